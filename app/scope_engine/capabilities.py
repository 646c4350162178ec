"""
Capability evaluator and YAML loader.

Roles map to capability tags through a static table. The table can be loaded
from YAML, where a role may extend another role:

    capabilities: [dashboard, viewReports, ...]
    roles:
      volunteer:
        capabilities: [dashboard, createClients]
      manager:
        extends: volunteer
        capabilities: [viewReports]

Admins of the active organization and master identities bypass the table and
pass every check.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Mapping

import yaml

from .models import Role

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    DASHBOARD = "dashboard"
    VIEW_REPORTS = "viewReports"
    EXPORT = "export"
    MANAGE_ORG = "manageOrg"
    CREATE_CLIENTS = "createClients"
    EDIT_CLIENTS = "editClients"
    LOG_VISITS = "logVisits"
    DELETE_CLIENTS = "deleteClients"
    DELETE_VISITS = "deleteVisits"


_ALL_TAGS = frozenset(c.value for c in Capability)

# Memberships only carry admin or volunteer; manager and viewer are reserved
# rows, reachable only by evaluating those role names directly.
DEFAULT_TABLE: Mapping[str, frozenset[str]] = {
    "admin": _ALL_TAGS,
    "volunteer": frozenset({"dashboard", "createClients", "editClients", "logVisits"}),
    "manager": frozenset({"dashboard", "viewReports", "export", "createClients", "editClients", "logVisits"}),
    "viewer": frozenset({"dashboard", "viewReports", "export"}),
}


class CapabilityConfigError(ValueError):
    """Raised when the capability YAML is invalid."""


@dataclass(frozen=True)
class CapabilitySet:
    """Capabilities for the active organization only."""

    role: str | None
    granted: frozenset[str]
    unrestricted: bool = False

    def has(self, capability: str | Capability) -> bool:
        tag = capability.value if isinstance(capability, Capability) else capability
        if not tag:
            return False
        return self.unrestricted or tag in self.granted

    @property
    def can_access_dashboard(self) -> bool:
        return self.has(Capability.DASHBOARD)

    @property
    def can_create_clients(self) -> bool:
        return self.has(Capability.CREATE_CLIENTS)

    @property
    def can_edit_clients(self) -> bool:
        return self.has(Capability.EDIT_CLIENTS)

    @property
    def can_log_visits(self) -> bool:
        return self.has(Capability.LOG_VISITS)

    @property
    def can_delete_clients(self) -> bool:
        return self.has(Capability.DELETE_CLIENTS)

    @property
    def can_delete_visits(self) -> bool:
        return self.has(Capability.DELETE_VISITS)

    @property
    def can_view_reports(self) -> bool:
        return self.has(Capability.VIEW_REPORTS)

    @property
    def can_manage_org(self) -> bool:
        return self.has(Capability.MANAGE_ORG)

    def to_dict(self) -> dict[str, bool]:
        return {
            "dashboard": self.can_access_dashboard,
            "createClients": self.can_create_clients,
            "editClients": self.can_edit_clients,
            "logVisits": self.can_log_visits,
            "deleteClients": self.can_delete_clients,
            "deleteVisits": self.can_delete_visits,
            "viewReports": self.can_view_reports,
            "manageOrg": self.can_manage_org,
        }


NO_CAPABILITIES = CapabilitySet(role=None, granted=frozenset())


class CapabilityEvaluator:
    """Pure mapping from (role for active org, master flag) to a CapabilitySet."""

    def __init__(self, table: Mapping[str, frozenset[str]] | None = None) -> None:
        self._table = dict(table if table is not None else DEFAULT_TABLE)

    @classmethod
    def from_yaml(cls, path: Path) -> CapabilityEvaluator:
        return cls(load_capability_table(path))

    @property
    def table(self) -> Mapping[str, frozenset[str]]:
        return dict(self._table)

    def evaluate(self, role: Role | str | None, is_master: bool) -> CapabilitySet:
        role_name = role.value if isinstance(role, Role) else role
        if is_master or role_name == Role.ADMIN.value:
            return CapabilitySet(role=role_name or Role.ADMIN.value, granted=_ALL_TAGS, unrestricted=True)
        if not role_name:
            return NO_CAPABILITIES
        granted = self._table.get(role_name)
        if granted is None:
            logger.debug("Unknown role has no capabilities role=%s", role_name)
            return CapabilitySet(role=role_name, granted=frozenset())
        return CapabilitySet(role=role_name, granted=granted)


# ---- YAML loader ---------------------------------------------------------------------


def load_capability_table(path: Path) -> dict[str, frozenset[str]]:
    """Load, validate and flatten a role → capabilities table from YAML."""

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise CapabilityConfigError("capability config must be a mapping")

    known_raw = raw.get("capabilities")
    known = _ALL_TAGS if known_raw is None else frozenset(str(c) for c in _as_list(known_raw, "capabilities"))

    roles_raw = raw.get("roles") or {}
    if not isinstance(roles_raw, dict):
        raise CapabilityConfigError("roles must be a mapping")

    direct: dict[str, frozenset[str]] = {}
    parents: dict[str, str | None] = {}
    for role_name, role_val in roles_raw.items():
        if not isinstance(role_val, dict):
            raise CapabilityConfigError(f"role {role_name!r} must be a mapping")
        caps = frozenset(str(c) for c in _as_list(role_val.get("capabilities") or [], f"{role_name}.capabilities"))
        unknown = caps.difference(known)
        if unknown:
            raise CapabilityConfigError(f"role {role_name!r} references unknown capabilities: {sorted(unknown)}")
        extends = role_val.get("extends")
        if extends is not None:
            extends = str(extends).strip() or None
        direct[str(role_name)] = caps
        parents[str(role_name)] = extends

    for role_name, parent in parents.items():
        if parent and parent not in direct:
            raise CapabilityConfigError(f"role {role_name!r} extends unknown role {parent!r}")

    return _flatten(direct, parents)


def _as_list(value: object, where: str) -> list:
    if not isinstance(value, list):
        raise CapabilityConfigError(f"{where} must be a list")
    return value


def _flatten(direct: Mapping[str, frozenset[str]], parents: Mapping[str, str | None]) -> dict[str, frozenset[str]]:
    """Resolve ``extends`` chains; raise on cycles."""

    effective: dict[str, frozenset[str]] = {}
    visiting: set[str] = set()

    def dfs(role_name: str) -> frozenset[str]:
        if role_name in effective:
            return effective[role_name]
        if role_name in visiting:
            raise CapabilityConfigError(f"cycle detected in role inheritance at {role_name!r}")
        visiting.add(role_name)
        caps = set(direct[role_name])
        parent = parents.get(role_name)
        if parent:
            caps.update(dfs(parent))
        effective[role_name] = frozenset(caps)
        visiting.remove(role_name)
        return effective[role_name]

    for name in direct:
        dfs(name)
    return effective
