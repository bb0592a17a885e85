"""Static role x resource-type permission matrix.

The matrix is built once at startup and injected into the PermissionEngine.
It is read-only after construction: the outer mapping is a MappingProxyType
and every cell is a frozenset of actions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from crm_access.domain.enums import Action, ResourceType, Role

ALL_ACTIONS: frozenset[Action] = frozenset(Action)
VIEW_ONLY: frozenset[Action] = frozenset({Action.VIEW})
NO_ACTIONS: frozenset[Action] = frozenset()

BUSINESS_RESOURCES: tuple[ResourceType, ...] = (
    ResourceType.LEAD,
    ResourceType.CONTACT,
    ResourceType.DEAL,
    ResourceType.PRODUCT,
    ResourceType.QUOTE,
    ResourceType.TASK,
)


class PermissionMatrix:
    """Immutable role -> resource type -> allowed actions table."""

    __slots__ = ("_rules",)

    def __init__(
        self,
        rules: Mapping[Role, Mapping[ResourceType, Iterable[Action]]],
    ) -> None:
        frozen = {
            role: MappingProxyType(
                {rt: frozenset(actions) for rt, actions in by_type.items()}
            )
            for role, by_type in rules.items()
        }
        self._rules: Mapping[Role, Mapping[ResourceType, frozenset[Action]]] = (
            MappingProxyType(frozen)
        )

    def allowed_actions(
        self, role: Role, resource_type: ResourceType
    ) -> frozenset[Action]:
        """Actions the role may perform on the type; empty set when unlisted."""
        return self._rules.get(role, MappingProxyType({})).get(
            resource_type, NO_ACTIONS
        )

    def allows(self, role: Role, action: Action, resource_type: ResourceType) -> bool:
        return action in self.allowed_actions(role, resource_type)

    def as_dict(self) -> dict[str, dict[str, list[str]]]:
        """Plain-dict view (sorted action lists), for logging and diagnostics."""
        return {
            role.value: {
                rt.value: sorted(a.value for a in actions)
                for rt, actions in by_type.items()
            }
            for role, by_type in self._rules.items()
        }


def build_default_matrix() -> PermissionMatrix:
    """Return the CRM's standard matrix.

    | role          | business types | subsidiary | dealer | user |
    |---------------|----------------|------------|--------|------|
    | SUPER_ADMIN   | all            | all        | all    | all  |
    | ADMIN         | all            | all        | all    | all  |
    | SALES_MANAGER | all            | view       | view   | none |
    | SALES_REP     | all            | none       | none   | none |
    """
    everything = {rt: ALL_ACTIONS for rt in ResourceType}
    manager = {rt: ALL_ACTIONS for rt in BUSINESS_RESOURCES}
    manager[ResourceType.SUBSIDIARY] = VIEW_ONLY
    manager[ResourceType.DEALER] = VIEW_ONLY
    rep = {rt: ALL_ACTIONS for rt in BUSINESS_RESOURCES}
    return PermissionMatrix(
        {
            Role.SUPER_ADMIN: everything,
            Role.ADMIN: everything,
            Role.SALES_MANAGER: manager,
            Role.SALES_REP: rep,
        }
    )
