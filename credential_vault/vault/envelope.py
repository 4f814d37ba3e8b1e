"""
Envelope Codec — Stored representation of an encrypted password.

Format (lowercase hex, colon-delimited, exactly four fields):
    <salt 32B>:<nonce 16B>:<tag 16B>:<ciphertext N bytes>

Every call to ``encrypt`` produces a new envelope with a fresh salt and
nonce; envelopes are never modified in place.
"""
import os
import binascii
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .crypto import (
    SALT_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    derive_key,
    seal,
    open_sealed,
)
from .errors import AuthenticationFailure, MalformedEnvelope

if TYPE_CHECKING:
    from .config import VaultConfig

logger = logging.getLogger("credential_vault")

DELIMITER = ":"
FIELD_COUNT = 4


def _unhex(name: str, value: str, size: int | None = None) -> bytes:
    """Decode one hex field, optionally checking its decoded width."""
    try:
        raw = binascii.unhexlify(value)
    except (binascii.Error, ValueError):
        raise MalformedEnvelope(f"{name} is not valid hex") from None
    if size is not None and len(raw) != size:
        raise MalformedEnvelope(
            f"{name} must be {size} bytes, got {len(raw)}"
        )
    return raw


@dataclass(frozen=True)
class EncryptionEnvelope:
    """The four fields of one sealed password."""
    salt: bytes
    nonce: bytes
    tag: bytes
    ciphertext: bytes

    def to_string(self) -> str:
        """Serialize to ``salt:nonce:tag:ciphertext`` in lowercase hex."""
        return DELIMITER.join(
            part.hex()
            for part in (self.salt, self.nonce, self.tag, self.ciphertext)
        )

    @classmethod
    def from_string(cls, value: str) -> "EncryptionEnvelope":
        """Parse a stored envelope string.

        Raises:
            MalformedEnvelope: On a wrong field count, invalid hex, or a
                salt/nonce/tag whose decoded width is wrong.
        """
        if not isinstance(value, str):
            raise MalformedEnvelope("envelope must be a string")
        fields = value.split(DELIMITER)
        if len(fields) != FIELD_COUNT:
            raise MalformedEnvelope(
                f"expected {FIELD_COUNT} fields, got {len(fields)}"
            )
        salt_hex, nonce_hex, tag_hex, ct_hex = fields
        return cls(
            salt=_unhex("salt", salt_hex, SALT_SIZE),
            nonce=_unhex("nonce", nonce_hex, NONCE_SIZE),
            tag=_unhex("tag", tag_hex, TAG_SIZE),
            ciphertext=_unhex("ciphertext", ct_hex),
        )


def encrypt(plaintext: str, secret: str) -> str:
    """Encrypt a text secret into a new envelope string.

    Args:
        plaintext: Text to protect; may be empty.
        secret: Server secret the record key is derived from.

    Returns:
        Envelope string ``salt:nonce:tag:ciphertext``.
    """
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    key = derive_key(secret.encode("utf-8"), salt)
    ciphertext, tag = seal(plaintext.encode("utf-8"), key, nonce)
    return EncryptionEnvelope(salt, nonce, tag, ciphertext).to_string()


def decrypt(envelope: str, secret: str) -> str:
    """Decrypt an envelope string produced by ``encrypt``.

    Raises:
        MalformedEnvelope: If the envelope does not parse, or the decrypted
            bytes are not UTF-8.
        AuthenticationFailure: If the secret is wrong or the envelope was
            tampered with.
    """
    parsed = EncryptionEnvelope.from_string(envelope)
    key = derive_key(secret.encode("utf-8"), parsed.salt)
    plaintext = open_sealed(parsed.ciphertext, parsed.tag, key, parsed.nonce)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedEnvelope("decrypted payload is not valid UTF-8") from None


class EnvelopeCodec:
    """Envelope encryption bound to one server secret.

    The secret is injected once at construction instead of being read from
    the environment on every call.
    """

    def __init__(self, secret: str):
        self._secret = secret

    def __repr__(self) -> str:
        return "<EnvelopeCodec secret=***>"

    @classmethod
    def from_config(cls, config: "VaultConfig") -> "EnvelopeCodec":
        """Build a codec from a ``VaultConfig``."""
        return cls(config.encryption_key)

    def encode(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` into a new envelope string."""
        return encrypt(plaintext, self._secret)

    def decode(self, envelope: str) -> str:
        """Decrypt an envelope string; failures propagate like ``decrypt``."""
        try:
            return decrypt(envelope, self._secret)
        except AuthenticationFailure:
            logger.warning("Envelope failed authentication")
            raise
