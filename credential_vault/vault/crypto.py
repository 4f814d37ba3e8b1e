"""
Vault Crypto Core — Key derivation and authenticated encryption.

Implements the two primitives every stored password goes through:
- Key derivation: PBKDF2-HMAC-SHA256(secret, salt, 100k iterations) → 32-byte key
- Authenticated cipher: AES-256-GCM(key, 16-byte nonce) → (ciphertext, 16-byte tag)

Security Note:
    Never log secrets, keys, plaintext or ciphertext values.
    A fresh salt per record yields a fresh key, so the random 128-bit nonce
    is never reused under the same key.
"""

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import AuthenticationFailure

SALT_SIZE = 32  # 256-bit salt
NONCE_SIZE = 16  # 128-bit nonce, embedded in the stored format
TAG_SIZE = 16  # GCM tag
KEY_LENGTH = 32  # AES-256
KDF_ITERATIONS = 100_000


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(secret: bytes, salt: bytes) -> bytes:
    """Derive a 32-byte encryption key using PBKDF2-HMAC-SHA256.

    Args:
        secret: Server-held passphrase bytes. Empty input is accepted.
        salt: Per-record random salt (32 bytes).

    Returns:
        32-byte derived key.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(secret)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def seal(plaintext: bytes, key: bytes, nonce: bytes) -> tuple[bytes, bytes]:
    """Encrypt and authenticate plaintext with AES-256-GCM.

    Args:
        plaintext: Data to encrypt.
        key: 32-byte key from ``derive_key``.
        nonce: 16-byte nonce, unique per key.

    Returns:
        Tuple of (ciphertext, tag); ciphertext has the plaintext's length.
    """
    if len(key) != KEY_LENGTH:
        raise ValueError(f"key must be {KEY_LENGTH} bytes, got {len(key)}")
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
    # AESGCM.encrypt returns ciphertext || tag
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    return sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]


def open_sealed(ciphertext: bytes, tag: bytes, key: bytes, nonce: bytes) -> bytes:
    """Verify the tag and decrypt AES-256-GCM ciphertext.

    Args:
        ciphertext: Encrypted payload.
        tag: 16-byte authentication tag from ``seal``.
        key: 32-byte key the payload was sealed with.
        nonce: 16-byte nonce the payload was sealed with.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        AuthenticationFailure: If the tag does not verify or an input has
            the wrong size.
    """
    if (
        len(key) != KEY_LENGTH
        or len(nonce) != NONCE_SIZE
        or len(tag) != TAG_SIZE
    ):
        raise AuthenticationFailure()
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag:
        raise AuthenticationFailure() from None
