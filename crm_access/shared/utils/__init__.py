"""Shared utilities (datetime, id generation)."""

from crm_access.shared.utils.datetime import (
    Clock,
    ensure_utc,
    to_epoch_ms,
    utc_now,
)
from crm_access.shared.utils.generators import (
    generate_cuid,
    generate_jti,
    generate_tenant_id,
)

__all__ = [
    "Clock",
    "ensure_utc",
    "generate_cuid",
    "generate_jti",
    "generate_tenant_id",
    "to_epoch_ms",
    "utc_now",
]
