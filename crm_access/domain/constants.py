"""Domain constants shared by the auth and user-management services."""

# Tenant assigned to self-registered users until an admin places them.
UNASSIGNED_TENANT = "UNASSIGNED"

# created_by markers for self-registration and system-created users.
CREATED_BY_SELF = "SELF_REGISTRATION"
CREATED_BY_SYSTEM = "SYSTEM"
