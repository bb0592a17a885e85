"""ID generators: CUID2 for user ids, uuid4 for refresh token ids."""

import uuid

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_jti() -> str:
    """Random refresh token id (uuid4, hex with dashes)."""
    return str(uuid.uuid4())


def generate_tenant_id() -> str:
    """New tenant id for an admin created by the super admin."""
    return str(uuid.uuid4())
