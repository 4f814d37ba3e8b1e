"""
Password suggestions and strength rating.

Generated passwords draw every character independently with ``secrets``,
which is backed by the OS CSPRNG and safe to share between threads.
"""
import math
import string
import secrets

SYMBOLS = "!@#$%^&*()_+-=[]{}"
# 26 + 26 + 10 + 18 = 80 characters, ~6.32 bits per character
DEFAULT_CHARSET = (
    string.ascii_lowercase + string.ascii_uppercase + string.digits + SYMBOLS
)
DEFAULT_LENGTH = 16

WEAK = "weak"
MEDIUM = "medium"
STRONG = "strong"


def generate_password(
    length: int = DEFAULT_LENGTH,
    charset: str = DEFAULT_CHARSET,
) -> str:
    """Generate a random password.

    Args:
        length: Number of characters. No upper bound is enforced here.
        charset: Characters to draw from, uniformly.

    Returns:
        Password of exactly ``length`` characters.

    Raises:
        ValueError: If length is negative or charset is empty.
    """
    if length < 0:
        raise ValueError("Password length cannot be negative")
    if not charset:
        raise ValueError("Password charset cannot be empty")
    return "".join(secrets.choice(charset) for _ in range(length))


def password_entropy(
    length: int = DEFAULT_LENGTH,
    charset: str = DEFAULT_CHARSET,
) -> float:
    """Entropy in bits of a password produced by ``generate_password``."""
    alphabet = len(set(charset))
    if length <= 0 or alphabet <= 1:
        return 0.0
    return length * math.log2(alphabet)


def check_strength(password: str) -> str:
    """Rate a password as ``weak``, ``medium`` or ``strong``.

    Counts character classes (lowercase, uppercase, digit, other);
    an empty password has no rating and returns ``""``.
    """
    if not password:
        return ""
    classes = sum((
        any(c in string.ascii_lowercase for c in password),
        any(c in string.ascii_uppercase for c in password),
        any(c in string.digits for c in password),
        any(c not in string.ascii_letters + string.digits for c in password),
    ))
    if len(password) >= 12 and classes >= 3:
        return STRONG
    if len(password) >= 8 and classes >= 2:
        return MEDIUM
    return WEAK
