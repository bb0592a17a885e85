"""Shared schema base: camelCase on the wire, snake_case in Python."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from crm_access.domain.enums import Role, normalize_role
from crm_access.domain.exceptions import ValidationException


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys (firstName); snake_case names also accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def parse_role(value: object) -> Role:
    """Canonical role for request bodies; unknown roles fail as field errors (400)."""
    try:
        return normalize_role(value)  # type: ignore[arg-type]
    except ValidationException as e:
        raise ValueError(e.message) from None
