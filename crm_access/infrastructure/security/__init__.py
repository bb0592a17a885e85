"""Security: JWT signing/verification and password hashing."""

from crm_access.infrastructure.security.jwt import JoseTokenCodec
from crm_access.infrastructure.security.password import (
    BcryptPasswordHasher,
    get_password_hash,
    verify_password,
)

__all__ = [
    "BcryptPasswordHasher",
    "JoseTokenCodec",
    "get_password_hash",
    "verify_password",
]
