"""
Permission system for ProjectHub RBAC.

Defines the functional modules, the capabilities each module supports and
the immutable permission matrix a role carries.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, model_validator

logger = structlog.get_logger(__name__)


class Module(str, Enum):
    """Functional areas capabilities are scoped to."""
    DASHBOARD = "dashboard"
    CLIENTS = "clients"
    PROJECTS = "projects"
    TASKS = "tasks"
    CALENDAR = "calendar"
    TIME_TRACKING = "timeTracking"
    TEAM = "team"


class Capability(str, Enum):
    """Actions a module may allow."""
    VIEW = "view"
    VIEW_ALL = "viewAll"
    VIEW_ASSIGNED = "viewAssigned"
    VIEW_TEAM = "viewTeam"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    ASSIGN = "assign"


# Capabilities defined for each module; pairs outside this table are always denied.
MODULE_CAPABILITIES: Dict[Module, FrozenSet[Capability]] = {
    Module.DASHBOARD: frozenset({Capability.VIEW, Capability.VIEW_ALL}),
    Module.CLIENTS: frozenset({
        Capability.VIEW, Capability.VIEW_ALL, Capability.CREATE,
        Capability.EDIT, Capability.DELETE,
    }),
    Module.PROJECTS: frozenset({
        Capability.VIEW, Capability.VIEW_ALL, Capability.VIEW_ASSIGNED,
        Capability.CREATE, Capability.EDIT, Capability.DELETE,
    }),
    Module.TASKS: frozenset({
        Capability.VIEW, Capability.VIEW_ALL, Capability.VIEW_ASSIGNED,
        Capability.VIEW_TEAM, Capability.CREATE, Capability.EDIT,
        Capability.DELETE, Capability.ASSIGN,
    }),
    Module.CALENDAR: frozenset({
        Capability.VIEW, Capability.VIEW_ALL, Capability.VIEW_ASSIGNED,
        Capability.CREATE, Capability.EDIT,
    }),
    Module.TIME_TRACKING: frozenset({
        Capability.VIEW, Capability.VIEW_ALL, Capability.VIEW_TEAM,
        Capability.CREATE, Capability.EDIT,
    }),
    Module.TEAM: frozenset({
        Capability.VIEW, Capability.VIEW_ALL, Capability.CREATE,
        Capability.EDIT, Capability.DELETE,
    }),
}


def parse_module(value: Union[Module, str, None]) -> Optional[Module]:
    """Return the module for ``value`` or None when it is not a known module."""
    if isinstance(value, Module):
        return value
    try:
        return Module(value)
    except ValueError:
        return None


def parse_capability(value: Union[Capability, str, None]) -> Optional[Capability]:
    """Return the capability for ``value`` or None when it is not a known action."""
    if isinstance(value, Capability):
        return value
    try:
        return Capability(value)
    except ValueError:
        return None


def is_defined_pair(module: Module, action: Capability) -> bool:
    """Check whether ``action`` is one of the capabilities ``module`` supports."""
    return action in MODULE_CAPABILITIES.get(module, frozenset())


class RolePermissions(BaseModel):
    """
    Permission matrix for one role.

    Holds, for each module, the set of capabilities that are granted.
    Capabilities absent from a module's set are denied, as are modules
    absent from the matrix.
    """
    model_config = ConfigDict(frozen=True)

    role: str
    modules: Mapping[Module, FrozenSet[Capability]]

    @model_validator(mode="before")
    @classmethod
    def _collect_granted(cls, data: Any) -> Any:
        # Accept the {"module": {"action": bool}} layout and keep only granted actions
        if not isinstance(data, dict) or "modules" not in data:
            return data
        modules: Dict[Module, FrozenSet[Capability]] = {}
        for module_key, capabilities in data["modules"].items():
            module = Module(module_key)
            if isinstance(capabilities, Mapping):
                granted = [Capability(key) for key, allowed in capabilities.items() if allowed is True]
            else:
                granted = [Capability(key) for key in capabilities]
            unknown = set(granted) - MODULE_CAPABILITIES[module]
            if unknown:
                raise ValueError(
                    f"Capabilities {sorted(c.value for c in unknown)} are not defined for module '{module.value}'"
                )
            modules[module] = frozenset(granted)
        return {**data, "modules": modules}

    def allows(self, module: Union[Module, str], action: Union[Capability, str]) -> bool:
        """Return True only if ``action`` is granted for ``module``; never raises."""
        parsed_module = parse_module(module)
        parsed_action = parse_capability(action)
        if parsed_module is None or parsed_action is None:
            return False
        return parsed_action in self.modules.get(parsed_module, frozenset())

    def to_matrix(self) -> Dict[str, Dict[str, bool]]:
        """Render the full matrix, with explicit False for every denied capability."""
        return {
            module.value: {
                capability.value: capability in self.modules.get(module, frozenset())
                for capability in sorted(MODULE_CAPABILITIES[module], key=lambda c: c.value)
            }
            for module in Module
        }
