"""Credential Vault — Encrypted storage of per-user site credentials.

Security Note (Threat Model):
    The server holds the secret every record key is derived from. Anyone
    with both the database and ENCRYPTION_KEY can decrypt every stored
    password. Per-user keys and key rotation are out of scope; the envelope
    format would not change if record keys were derived per user.
"""

from .config import VaultConfig, generate_encryption_key, load_encryption_key
from .credential_store import CredentialVault
from .envelope import EncryptionEnvelope, EnvelopeCodec, decrypt, encrypt
from .errors import (
    AuthenticationFailure,
    CredentialNotFound,
    MalformedEnvelope,
    VaultError,
)
from .models import (
    Credential,
    CredentialCreate,
    CredentialUpdate,
    credentials_to_json,
)
from .passwords import check_strength, generate_password, password_entropy

__all__ = [
    "VaultConfig",
    "generate_encryption_key",
    "load_encryption_key",
    "CredentialVault",
    "EncryptionEnvelope",
    "EnvelopeCodec",
    "encrypt",
    "decrypt",
    "VaultError",
    "MalformedEnvelope",
    "AuthenticationFailure",
    "CredentialNotFound",
    "Credential",
    "CredentialCreate",
    "CredentialUpdate",
    "credentials_to_json",
    "generate_password",
    "password_entropy",
    "check_strength",
]
