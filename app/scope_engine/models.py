"""Domain records shared by the loader, resolver and session."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class Role(str, Enum):
    ADMIN = "admin"
    VOLUNTEER = "volunteer"

    @classmethod
    def parse(cls, raw: object) -> Role:
        """Anything that is not exactly ``"admin"`` is read as a volunteer."""
        return cls.ADMIN if str(raw).strip().lower() == cls.ADMIN.value else cls.VOLUNTEER


@dataclass(frozen=True)
class Identity:
    """An authenticated caller, independent of any organization."""

    id: str
    email: str | None = None
    trusted_attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_master(self) -> bool:
        # Only a literal boolean true counts; "true" or 1 do not.
        return self.trusted_attributes.get("master") is True


@dataclass(frozen=True)
class Organization:
    id: str
    name: str = ""
    active: bool = True
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "name": self.name, "active": self.active, **dict(self.extra)}


@dataclass(frozen=True)
class Location:
    id: str
    org_id: str
    name: str = ""
    active: bool = True
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "active": self.active,
            **dict(self.extra),
        }


@dataclass(frozen=True)
class Membership:
    """The (identity, organization) relationship carrying role and location restrictions."""

    org_id: str
    identity_id: str
    role: Role
    location_ids: frozenset[str] = frozenset()
    active: bool = True
    suspended: bool = False

    @property
    def is_effective(self) -> bool:
        return self.active and not self.suspended


# ---- Location choice -----------------------------------------------------------------


ALL_WIRE_VALUE = "ALL"


class LocationKind(str, Enum):
    SINGLE = "single"
    ALL = "all"
    NONE = "none"


@dataclass(frozen=True)
class LocationChoice:
    """
    Tagged location selection: a single location, every location, or nothing.

    Use ``LocationChoice.single(id)``, ``ALL_LOCATIONS`` or ``NO_LOCATION``
    rather than constructing instances directly.
    """

    kind: LocationKind
    location_id: str | None = None

    def __post_init__(self) -> None:
        if (self.kind is LocationKind.SINGLE) != bool(self.location_id):
            raise ValueError("location_id is required for, and only for, a single location")

    @classmethod
    def single(cls, location_id: str) -> LocationChoice:
        return cls(LocationKind.SINGLE, location_id)

    @property
    def is_single(self) -> bool:
        return self.kind is LocationKind.SINGLE

    @property
    def is_all(self) -> bool:
        return self.kind is LocationKind.ALL

    @property
    def is_none(self) -> bool:
        return self.kind is LocationKind.NONE

    def to_wire(self) -> str | None:
        if self.kind is LocationKind.ALL:
            return ALL_WIRE_VALUE
        return self.location_id

    @classmethod
    def from_wire(cls, raw: object) -> LocationChoice:
        """
        Decode the persisted form.

        ``None`` is no location, ``"ALL"`` is every location. Older caches
        stored the empty string for every location; it decodes to ALL too.
        """
        if raw is None:
            return NO_LOCATION
        value = str(raw).strip()
        if value == "" or value == ALL_WIRE_VALUE:
            return ALL_LOCATIONS
        return cls.single(value)


ALL_LOCATIONS = LocationChoice(LocationKind.ALL)
NO_LOCATION = LocationChoice(LocationKind.NONE)


@dataclass(frozen=True)
class ScopeSelection:
    """Active organization / location pair."""

    org_id: str | None = None
    location: LocationChoice = NO_LOCATION

    @property
    def location_id(self) -> str | None:
        return self.location.location_id

    def to_wire(self) -> dict[str, str | None]:
        return {"activeOrgId": self.org_id, "activeLocationId": self.location.to_wire()}

    @classmethod
    def from_wire(cls, raw: Mapping[str, Any] | None) -> ScopeSelection:
        if not raw:
            return EMPTY_SELECTION
        org_id = raw.get("activeOrgId")
        return cls(
            org_id=str(org_id) if org_id else None,
            location=LocationChoice.from_wire(raw.get("activeLocationId")),
        )


EMPTY_SELECTION = ScopeSelection()


@dataclass(frozen=True)
class StoredScope:
    """Per-identity profile record as kept by the server store."""

    identity_id: str
    selection: ScopeSelection = EMPTY_SELECTION
    updated_at: datetime | None = None
