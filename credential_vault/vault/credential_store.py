"""
CredentialVault — Per-user credential records with encrypted passwords.

Provides the public API for stored credentials:
- ``create(user_id, data)`` — encrypt the password and insert a record
- ``get(user_id, credential_id)`` — fetch one record and decrypt it
- ``list_credentials(user_id)`` / ``search(user_id, term)`` — decrypt many
- ``update(user_id, credential_id, changes)`` — change supplied fields only
- ``delete(user_id, credential_id)`` — remove a record
- ``suggest_password(length)`` — random password within configured bounds

Every statement is scoped by ``user_id``; a caller can only reach records it
owns. The password column holds an envelope string and never plaintext.

Security Note:
    Never log passwords or envelopes. Only log ids, user ids and counts.
"""
import asyncio
import logging
from typing import Any, Optional

from .config import VaultConfig
from .envelope import EnvelopeCodec
from .errors import CredentialNotFound
from .models import Credential, CredentialCreate, CredentialUpdate
from .passwords import DEFAULT_LENGTH, generate_password

logger = logging.getLogger("credential_vault")

_DEFAULT_MAX_CREDENTIALS = 1000
_DEFAULT_MAX_PASSWORD_LENGTH = 128

# Columns an update may touch; keys of CredentialUpdate.
_UPDATABLE_COLUMNS = (
    "site_name", "site_url", "username", "password", "notes", "category",
)

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_RETURNING = """
RETURNING id, user_id, site_name, site_url, username, password,
          notes, category, created_at, updated_at
"""

_SELECT_COLUMNS = """
SELECT id, user_id, site_name, site_url, username, password,
       notes, category, created_at, updated_at
FROM vault.credentials
"""

_INSERT_CREDENTIAL = """
INSERT INTO vault.credentials
    (user_id, site_name, site_url, username, password, notes, category)
VALUES ($1, $2, $3, $4, $5, $6, $7)
""" + _RETURNING

_SELECT_ONE = _SELECT_COLUMNS + """
WHERE id = $1 AND user_id = $2
"""

_SELECT_ALL = _SELECT_COLUMNS + """
WHERE user_id = $1
ORDER BY site_name ASC
"""

_SEARCH = _SELECT_COLUMNS + """
WHERE user_id = $1 AND (site_name ILIKE $2 OR username ILIKE $2)
ORDER BY site_name ASC
"""

_COUNT_FOR_USER = """
SELECT COUNT(*) FROM vault.credentials WHERE user_id = $1
"""

_LOCK_USER = """
SELECT pg_advisory_xact_lock($1)
"""

_DELETE_CREDENTIAL = """
DELETE FROM vault.credentials
WHERE id = $1 AND user_id = $2
RETURNING id
"""


def build_update(
    credential_id: int, user_id: int, fields: dict[str, Any],
) -> tuple[str, list[Any]]:
    """Build the UPDATE statement for the given column values.

    Args:
        credential_id: Record to update.
        user_id: Owner the record must belong to.
        fields: Column name to new value; names must be updatable columns.

    Returns:
        Tuple of (sql, positional arguments).
    """
    assignments = []
    values: list[Any] = []
    for column, value in fields.items():
        if column not in _UPDATABLE_COLUMNS:
            raise ValueError(f"Column cannot be updated: {column}")
        values.append(value)
        assignments.append(f"{column} = ${len(values)}")
    assignments.append("updated_at = NOW()")
    values.extend((credential_id, user_id))
    sql = (
        "\nUPDATE vault.credentials\n"
        f"SET {', '.join(assignments)}\n"
        f"WHERE id = ${len(values) - 1} AND user_id = ${len(values)}\n"
        + _RETURNING
    )
    return sql, values


def like_pattern(term: str) -> str:
    """Substring pattern for ILIKE with the wildcard characters escaped."""
    escaped = (
        term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


class CredentialVault:
    """Credential records for many users, passwords sealed in envelopes.

    Passwords are encrypted with ``EnvelopeCodec`` before they reach the
    database and decrypted on every read. A decryption failure is raised to
    the caller and never replaced by a placeholder value.
    """

    def __init__(
        self,
        db_pool: Any,
        codec: EnvelopeCodec,
        max_credentials: int = _DEFAULT_MAX_CREDENTIALS,
        password_length: int = DEFAULT_LENGTH,
        max_password_length: int = _DEFAULT_MAX_PASSWORD_LENGTH,
    ):
        self._db = db_pool
        self._codec = codec
        self._max_credentials = max_credentials
        self._password_length = password_length
        self._max_password_length = max_password_length

    @classmethod
    def from_config(cls, db_pool: Any, config: VaultConfig) -> "CredentialVault":
        """Create a vault whose codec and limits come from ``config``."""
        return cls(
            db_pool=db_pool,
            codec=EnvelopeCodec.from_config(config),
            max_credentials=config.max_credentials_per_user,
            password_length=config.password_length,
            max_password_length=config.max_password_length,
        )

    # ------------------------------------------------------------------
    # Row helpers
    # ------------------------------------------------------------------

    async def _decrypt_row(self, row: Any) -> Credential:
        """Decrypt the envelope stored in a row in a worker thread."""
        password = await asyncio.to_thread(self._codec.decode, row["password"])
        return Credential.from_row(row, password)

    async def _decrypt_rows(self, rows: list) -> list[Credential]:
        """Decrypt rows one at a time, yielding to the loop between them."""
        return [await self._decrypt_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create(self, user_id: int, data: CredentialCreate) -> Credential:
        """Encrypt and insert a new credential.

        Args:
            user_id: Owner of the new record.
            data: Validated credential fields, password in plaintext.

        Returns:
            The stored credential, carrying the plaintext password once so
            the caller can echo it back.

        Raises:
            ValueError: If the user already holds the maximum number of
                credentials.
        """
        envelope = await asyncio.to_thread(self._codec.encode, data.password)

        async with self._db.acquire() as conn:
            # count and insert under a per-user lock held until commit
            async with conn.transaction():
                await conn.execute(_LOCK_USER, user_id)
                count = await conn.fetchval(_COUNT_FOR_USER, user_id)
                if count >= self._max_credentials:
                    raise ValueError(
                        f"Max credentials per user ({self._max_credentials}) exceeded"
                    )
                row = await conn.fetchrow(
                    _INSERT_CREDENTIAL,
                    user_id, data.site_name, data.site_url, data.username,
                    envelope, data.notes, data.category,
                )

        logger.debug("Credential create: user=%s id=%s", user_id, row["id"])
        return Credential.from_row(row, data.password)

    async def get(self, user_id: int, credential_id: int) -> Credential:
        """Fetch and decrypt one credential.

        Raises:
            CredentialNotFound: If no such record belongs to the user.
        """
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_ONE, credential_id, user_id)
        if row is None:
            raise CredentialNotFound(credential_id, user_id)
        return await self._decrypt_row(row)

    async def list_credentials(self, user_id: int) -> list[Credential]:
        """All credentials of a user, ordered by site name."""
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL, user_id)
        return await self._decrypt_rows(rows)

    async def search(self, user_id: int, term: str) -> list[Credential]:
        """Credentials whose site name or username contains ``term``.

        Matching is case-insensitive; ``%`` and ``_`` in the term match
        literally.
        """
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SEARCH, user_id, like_pattern(term))
        logger.debug("Credential search: user=%s matches=%d", user_id, len(rows))
        return await self._decrypt_rows(rows)

    async def update(
        self, user_id: int, credential_id: int, changes: CredentialUpdate,
    ) -> Credential:
        """Change the supplied fields of a credential.

        A new password is sealed in a new envelope with a fresh salt and
        nonce; the previous envelope is overwritten.

        Raises:
            ValueError: If ``changes`` sets no field.
            CredentialNotFound: If no such record belongs to the user.
        """
        fields = changes.changed_fields()
        if not fields:
            raise ValueError("No fields to update")
        if "password" in fields:
            fields["password"] = await asyncio.to_thread(
                self._codec.encode, fields["password"],
            )

        sql, args = build_update(credential_id, user_id, fields)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(sql, *args)
        if row is None:
            raise CredentialNotFound(credential_id, user_id)

        logger.debug(
            "Credential update: user=%s id=%s fields=%s",
            user_id, credential_id, sorted(fields),
        )
        return await self._decrypt_row(row)

    async def delete(self, user_id: int, credential_id: int) -> None:
        """Delete a credential.

        Raises:
            CredentialNotFound: If no such record belongs to the user.
        """
        async with self._db.acquire() as conn:
            deleted = await conn.fetchval(
                _DELETE_CREDENTIAL, credential_id, user_id,
            )
        if deleted is None:
            raise CredentialNotFound(credential_id, user_id)
        logger.debug("Credential delete: user=%s id=%s", user_id, credential_id)

    def suggest_password(self, length: Optional[int] = None) -> str:
        """Generate a password suggestion.

        Args:
            length: Requested length; the configured default when omitted.

        Raises:
            ValueError: If length is below 1 or above the configured maximum.
        """
        if length is None:
            length = self._password_length
        if length < 1 or length > self._max_password_length:
            raise ValueError(
                f"Password length must be between 1 and "
                f"{self._max_password_length}"
            )
        return generate_password(length)
