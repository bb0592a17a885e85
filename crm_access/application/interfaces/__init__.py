"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from crm_access.infrastructure or crm_access.api.
"""

from crm_access.application.interfaces.repositories import ICredentialStore
from crm_access.application.interfaces.services import (
    ICacheService,
    IPasswordHasher,
    ISubject,
    ITokenCodec,
)

__all__ = [
    "ICacheService",
    "ICredentialStore",
    "IPasswordHasher",
    "ISubject",
    "ITokenCodec",
]
