"""crm-access: credential lifecycle and role-based authorization for a multi-tenant CRM."""

__version__ = "1.0.0"
