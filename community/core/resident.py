"""
Resident records. Identity is the normalized email; the apartment code is a secondary unique attribute.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional

from .errors import InvalidArgumentError


class ResidentStatus(Enum):
    ACTIVE = "Active resident with all privileges"
    INACTIVE = "Temporarily inactive resident"
    PENDING = "New resident pending approval"
    SUSPENDED = "Resident with suspended privileges"

    @property
    def description(self) -> str:
        return self.value


class Role(Enum):
    """Role variants. Permissions are looked up, never enforced here."""

    RESIDENT = frozenset({"request_service", "view_own_services"})
    ADMINISTRATOR = frozenset({
        "request_service", "view_own_services", "view_all_services",
        "manage_services", "manage_residents",
    })

    @property
    def permissions(self) -> FrozenSet[str]:
        return self.value


def normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    return email.strip().lower()


def normalize_apartment(apartment: Optional[str]) -> Optional[str]:
    if apartment is None:
        return None
    return apartment.strip().upper()


@dataclass(frozen=True)
class ResidentRecord:
    email: str
    name: str
    apartment: str
    status: ResidentStatus = ResidentStatus.ACTIVE
    phone: Optional[str] = None
    role: Role = Role.RESIDENT
    unit_count: Optional[int] = None
    extra_permissions: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        for name in ("email", "name", "apartment"):
            value = getattr(self, name)
            if value is None or not str(value).strip():
                raise InvalidArgumentError(f"{name} cannot be empty", field=name)

        object.__setattr__(self, "email", normalize_email(self.email))
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "apartment", normalize_apartment(self.apartment))
        if self.phone is not None:
            object.__setattr__(self, "phone", self.phone.strip() or None)
        object.__setattr__(self, "extra_permissions", frozenset(self.extra_permissions))

    @property
    def key(self) -> str:
        return self.email

    def has_key(self) -> bool:
        return bool(self.email)

    @property
    def permissions(self) -> FrozenSet[str]:
        return self.role.permissions | self.extra_permissions

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    @property
    def is_administrator(self) -> bool:
        return self.role is Role.ADMINISTRATOR

    def with_changes(self, **changes) -> "ResidentRecord":
        """Copy with fields changed. The email is the identity and cannot change."""
        if "email" in changes and normalize_email(changes["email"]) != self.email:
            raise InvalidArgumentError("Resident email cannot be changed", key=self.email,
                                       operation="update", field="email")
        return replace(self, **changes)
