"""DTOs for admin user management."""

from dataclasses import dataclass

from crm_access.domain.enums import Role


@dataclass(frozen=True)
class CreateUserCommand:
    """Admin-initiated user creation. reporting_to is required for SALES_REP."""

    email: str
    password: str
    first_name: str
    last_name: str
    role: Role
    phone_number: str | None = None
    reporting_to: str | None = None
