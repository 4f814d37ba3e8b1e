"""
Tests for the key derivation and authenticated cipher primitives.
"""
import os
import hashlib

import pytest

from credential_vault.vault.crypto import (
    KDF_ITERATIONS,
    KEY_LENGTH,
    NONCE_SIZE,
    SALT_SIZE,
    TAG_SIZE,
    derive_key,
    open_sealed,
    seal,
)
from credential_vault.vault.errors import AuthenticationFailure


@pytest.fixture(scope="module")
def key():
    return derive_key(b"server-secret", b"\x01" * SALT_SIZE)


# --- Test Key Derivation ---

class TestDeriveKey:
    """Tests for PBKDF2-HMAC-SHA256 key derivation."""

    def test_key_length(self, key):
        assert len(key) == KEY_LENGTH

    def test_deterministic(self, key):
        """Same secret and salt always give the same key."""
        assert derive_key(b"server-secret", b"\x01" * SALT_SIZE) == key

    def test_matches_pbkdf2_sha256(self):
        """Derivation is plain PBKDF2-HMAC-SHA256 with 100k iterations."""
        salt = os.urandom(SALT_SIZE)
        expected = hashlib.pbkdf2_hmac(
            "sha256", b"server-secret", salt, KDF_ITERATIONS, KEY_LENGTH,
        )
        assert derive_key(b"server-secret", salt) == expected
        assert KDF_ITERATIONS == 100_000

    def test_salt_changes_key(self, key):
        assert derive_key(b"server-secret", b"\x02" * SALT_SIZE) != key

    def test_secret_changes_key(self, key):
        assert derive_key(b"other-secret", b"\x01" * SALT_SIZE) != key

    def test_empty_secret_is_valid(self):
        """An empty secret is accepted, not rejected."""
        assert len(derive_key(b"", b"\x00" * SALT_SIZE)) == KEY_LENGTH


# --- Test Authenticated Cipher ---

class TestSealOpen:
    """Tests for AES-256-GCM seal/open."""

    def test_round_trip(self, key):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, tag = seal(b"MyS3cret!", key, nonce)
        assert open_sealed(ciphertext, tag, key, nonce) == b"MyS3cret!"

    def test_ciphertext_length_matches_plaintext(self, key):
        for size in (0, 1, 15, 16, 17, 100):
            ciphertext, tag = seal(b"x" * size, key, os.urandom(NONCE_SIZE))
            assert len(ciphertext) == size
            assert len(tag) == TAG_SIZE

    def test_empty_plaintext(self, key):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, tag = seal(b"", key, nonce)
        assert open_sealed(ciphertext, tag, key, nonce) == b""

    def test_tampered_ciphertext_rejected(self, key):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, tag = seal(b"attack at dawn", key, nonce)
        tampered = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]
        with pytest.raises(AuthenticationFailure):
            open_sealed(tampered, tag, key, nonce)

    def test_tampered_tag_rejected(self, key):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, tag = seal(b"attack at dawn", key, nonce)
        tampered = tag[:-1] + bytes([tag[-1] ^ 0x80])
        with pytest.raises(AuthenticationFailure):
            open_sealed(ciphertext, tampered, key, nonce)

    def test_wrong_nonce_rejected(self, key):
        ciphertext, tag = seal(b"attack at dawn", key, b"\x00" * NONCE_SIZE)
        with pytest.raises(AuthenticationFailure):
            open_sealed(ciphertext, tag, key, b"\x01" * NONCE_SIZE)

    def test_wrong_key_rejected(self, key):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, tag = seal(b"attack at dawn", key, nonce)
        other = derive_key(b"wrong-secret", b"\x01" * SALT_SIZE)
        with pytest.raises(AuthenticationFailure):
            open_sealed(ciphertext, tag, other, nonce)

    @pytest.mark.parametrize("tag_size", [0, 8, 15, 17])
    def test_malformed_tag_rejected(self, key, tag_size):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, _ = seal(b"data", key, nonce)
        with pytest.raises(AuthenticationFailure):
            open_sealed(ciphertext, b"\x00" * tag_size, key, nonce)

    def test_malformed_key_rejected_on_open(self, key):
        nonce = os.urandom(NONCE_SIZE)
        ciphertext, tag = seal(b"data", key, nonce)
        with pytest.raises(AuthenticationFailure):
            open_sealed(ciphertext, tag, key[:16], nonce)

    def test_malformed_nonce_rejected_on_open(self, key):
        ciphertext, tag = seal(b"data", key, b"\x00" * NONCE_SIZE)
        with pytest.raises(AuthenticationFailure):
            open_sealed(ciphertext, tag, key, b"\x00" * 12)

    def test_seal_rejects_bad_sizes(self, key):
        with pytest.raises(ValueError):
            seal(b"data", key[:16], os.urandom(NONCE_SIZE))
        with pytest.raises(ValueError):
            seal(b"data", key, os.urandom(12))
