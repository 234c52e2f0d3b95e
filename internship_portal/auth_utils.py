"""Authentication utilities: password hashing."""

from passlib.context import CryptContext

# pbkdf2_sha256 is pure-python in passlib and avoids the bcrypt>=4.1
# incompatibilities (72-byte detection errors).
PWD_CONTEXT = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password for storage."""
    return PWD_CONTEXT.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plaintext password against its hash."""
    return PWD_CONTEXT.verify(plain_password, password_hash)
