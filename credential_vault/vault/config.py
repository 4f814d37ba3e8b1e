"""
Vault Configuration — Server secret loading and validated settings.

Reads settings from environment variables:
    ENCRYPTION_KEY = <server secret used to derive every record key>
    VAULT_PASSWORD_LENGTH = <default length of suggested passwords>
    VAULT_MAX_PASSWORD_LENGTH = <upper bound for suggested passwords>
    VAULT_MAX_CREDENTIALS = <maximum credentials per user>
    VAULT_REQUIRE_ENCRYPTION_KEY = 1 to refuse the built-in fallback secret

Security Note:
    Never log key material. The fallback secret exists only so a development
    server starts without configuration; a warning is logged when it is used.
"""
import os
import base64
import secrets
import logging

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger("credential_vault")

DEFAULT_ENCRYPTION_KEY = "vault-server-encryption-key-change-me"

_TRUTHY = ("1", "true", "yes", "on")


def load_encryption_key() -> str:
    """Read the server secret from the ENCRYPTION_KEY environment variable.

    Returns:
        The configured secret, or the fallback secret when unset.

    Raises:
        RuntimeError: If ENCRYPTION_KEY is unset (or empty) and
            VAULT_REQUIRE_ENCRYPTION_KEY is enabled.
    """
    key = os.environ.get("ENCRYPTION_KEY")
    if key:
        return key
    if os.environ.get("VAULT_REQUIRE_ENCRYPTION_KEY", "").lower() in _TRUTHY:
        raise RuntimeError(
            "ENCRYPTION_KEY environment variable is not set. "
            "Generate one with credential_vault.vault.generate_encryption_key()"
        )
    logger.warning(
        "ENCRYPTION_KEY is not set, using the built-in fallback secret; "
        "stored passwords are not protected"
    )
    return DEFAULT_ENCRYPTION_KEY


def generate_encryption_key() -> str:
    """Generate a random 32-byte server secret as URL-safe base64.

    This is a utility for operators to generate new secrets.
    """
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("ascii")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    encryption_key: str = Field(min_length=1, repr=False)
    password_length: int = Field(default=16, ge=1)
    max_password_length: int = Field(default=128, ge=1)
    max_credentials_per_user: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def validate_password_bounds(self) -> "VaultConfig":
        """Ensure the default password length is within bounds."""
        if self.password_length > self.max_password_length:
            raise ValueError(
                f"password_length {self.password_length} exceeds "
                f"max_password_length {self.max_password_length}"
            )
        return self

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        return cls(
            encryption_key=load_encryption_key(),
            password_length=os.environ.get("VAULT_PASSWORD_LENGTH", 16),
            max_password_length=os.environ.get("VAULT_MAX_PASSWORD_LENGTH", 128),
            max_credentials_per_user=os.environ.get("VAULT_MAX_CREDENTIALS", 1000),
        )
