"""Error types raised by the credential vault."""


class VaultError(Exception):
    """Base exception for credential vault operations."""


class MalformedEnvelope(VaultError):
    """Stored envelope does not parse into four well-formed hex fields."""


class AuthenticationFailure(VaultError):
    """Authentication tag did not verify.

    Raised for a wrong secret and for a tampered envelope alike, with the
    same message, so callers cannot tell the two apart.
    """

    def __init__(self, message: str = "Unable to decrypt credential"):
        super().__init__(message)


class CredentialNotFound(VaultError):
    """No credential with the given id belongs to the given user."""

    def __init__(self, credential_id: int, user_id: int):
        self.credential_id = credential_id
        self.user_id = user_id
        super().__init__(f"Credential {credential_id} not found")
