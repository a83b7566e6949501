"""
Service request entity and its state machine.
A request only moves along the edges of TRANSITIONS; every move produces a new value.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from .errors import InvalidArgumentError, InvalidStateTransitionError
from .identity import key_is_valid


class ServiceType(Enum):
    """Service categories with their scheduling metadata."""

    CLEANING = ("Cleaning Service", "Regular cleaning and maintenance", 2.0, 4.0, True)
    MAINTENANCE = ("Maintenance Service", "Repairs and technical support", 1.0, 8.0, True)
    SECURITY = ("Security Service", "Security monitoring and patrol", 24.0, 24.0, True)
    GARDENING = ("Gardening Service", "Landscaping and plant care", 1.0, 3.0, True)
    PEST_CONTROL = ("Pest Control", "Pest prevention and elimination", 0.5, 2.0, False)
    POOL_MAINTENANCE = ("Pool Maintenance", "Pool cleaning and chemical balance", 1.0, 2.0, False)
    WASTE_MANAGEMENT = ("Waste Management", "Garbage collection and disposal", 1.0, 1.0, False)

    def __init__(self, display_name: str, description: str, min_duration_hours: float,
                 max_duration_hours: float, available_on_weekends: bool):
        self.display_name = display_name
        self.description = description
        self.min_duration_hours = min_duration_hours
        self.max_duration_hours = max_duration_hours
        self.available_on_weekends = available_on_weekends

    @property
    def duration_range(self) -> Tuple[float, float]:
        """Informational duration hint in hours; not enforced."""
        return self.min_duration_hours, self.max_duration_hours

    @property
    def tag(self) -> str:
        return self.name.lower()


class ServiceStatus(Enum):
    REQUESTED = "Service has been requested"
    SCHEDULED = "Service is scheduled"
    IN_PROGRESS = "Service is currently being performed"
    COMPLETED = "Service has been completed"
    CANCELLED = "Service has been cancelled"
    FAILED = "Service could not be completed"

    @property
    def description(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: Dict[ServiceStatus, FrozenSet[ServiceStatus]] = {
    ServiceStatus.REQUESTED: frozenset({ServiceStatus.SCHEDULED, ServiceStatus.CANCELLED}),
    ServiceStatus.SCHEDULED: frozenset({ServiceStatus.IN_PROGRESS, ServiceStatus.CANCELLED}),
    ServiceStatus.IN_PROGRESS: frozenset({ServiceStatus.COMPLETED, ServiceStatus.FAILED}),
    ServiceStatus.COMPLETED: frozenset(),
    ServiceStatus.CANCELLED: frozenset(),
    ServiceStatus.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(current: ServiceStatus, target: ServiceStatus) -> bool:
    """Pure lookup in the transition table."""
    return target in TRANSITIONS.get(current, frozenset())


def _clean_requirements(requirements) -> Tuple[str, ...]:
    return tuple(r.strip() for r in (requirements or ()) if r is not None and r.strip())


def _clean_tags(tags, service_type: ServiceType) -> FrozenSet[str]:
    cleaned = {t.strip().lower() for t in (tags or ()) if t is not None and t.strip()}
    cleaned.add(service_type.tag)
    return frozenset(cleaned)


@dataclass(frozen=True)
class ServiceRequest:
    """One requested unit of work. Immutable: use transition_to() to move it along."""

    service_id: str
    service_type: ServiceType
    description: str
    provider_name: str
    requested_by: str
    estimated_cost: Optional[float] = None
    status: ServiceStatus = ServiceStatus.REQUESTED
    requested_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    requirements: Tuple[str, ...] = ()
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if not key_is_valid(self.service_id):
            raise InvalidArgumentError("Service ID cannot be empty", field="service_id")
        if not isinstance(self.service_type, ServiceType):
            raise InvalidArgumentError("Service type is required", key=self.service_id, field="service_type")
        for name in ("description", "provider_name", "requested_by"):
            value = getattr(self, name)
            if value is None or not str(value).strip():
                raise InvalidArgumentError(f"{name} cannot be empty", key=self.service_id, field=name)

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "service_id", self.service_id.strip())
        object.__setattr__(self, "description", self.description.strip())
        object.__setattr__(self, "provider_name", self.provider_name.strip())
        object.__setattr__(self, "requested_by", self.requested_by.strip())
        object.__setattr__(self, "requirements", _clean_requirements(self.requirements))
        object.__setattr__(self, "tags", _clean_tags(self.tags, self.service_type))

    @property
    def key(self) -> str:
        return self.service_id

    def has_key(self) -> bool:
        return key_is_valid(self.service_id)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def can_transition_to(self, target: ServiceStatus) -> bool:
        return can_transition(self.status, target)

    def transition_to(self, target: ServiceStatus, at: Optional[datetime] = None,
                      reason: Optional[str] = None) -> "ServiceRequest":
        """
        Return a copy moved to target.

        SCHEDULED requires `at` (the scheduled time); COMPLETED requires `at` (completion time).
        IN_PROGRESS records `at` as the start time when given; FAILED records `reason`.
        Timestamps already set are never overwritten.
        """
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(self.service_id, self.status, target)

        changes = {"status": target}
        if target is ServiceStatus.SCHEDULED:
            if at is None:
                raise InvalidArgumentError("Scheduled time is required", key=self.service_id,
                                           operation="schedule", field="scheduled_at")
            changes["scheduled_at"] = at
        elif target is ServiceStatus.COMPLETED:
            if at is None:
                raise InvalidArgumentError("Completion time is required", key=self.service_id,
                                           operation="complete", field="completed_at")
            changes["completed_at"] = at
        elif target is ServiceStatus.IN_PROGRESS and at is not None:
            changes["started_at"] = at
        elif target is ServiceStatus.FAILED and reason:
            changes["failure_reason"] = reason.strip()

        for stamp in ("scheduled_at", "started_at", "completed_at"):
            if stamp in changes and getattr(self, stamp) is not None:
                del changes[stamp]

        return replace(self, **changes)

    def requirements_containing(self, keyword: str) -> Tuple[str, ...]:
        if not keyword:
            return ()
        needle = keyword.lower()
        return tuple(r for r in self.requirements if needle in r.lower())

    def __str__(self) -> str:
        return (f"ServiceRequest(id={self.service_id!r}, type={self.service_type.name}, "
                f"status={self.status.name}, provider={self.provider_name!r}, cost={self.estimated_cost})")
