"""
Service request lifecycle - the only component allowed to change a request's status.
Validates against the transition table and scheduling rules, then writes the new value through the repository.
"""

import random
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from util.logging import audit_event, logger

from .errors import InvalidArgumentError, InvalidStateTransitionError, NotFoundError, SchedulingConflictError
from .repository import IRepository, InMemoryRepository
from .service_request import ServiceRequest, ServiceStatus, ServiceType

DEFAULT_SLOT_HOURS = 2
DEFAULT_KEY_SUFFIX_MAX = 1000
KEY_GENERATION_ATTEMPTS = 5


@dataclass(frozen=True)
class ServiceStatistics:
    total_services: int
    status_counts: Dict[ServiceStatus, int]
    type_counts: Dict[ServiceType, int]


def _normalize_name(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def _requested_order(request: ServiceRequest):
    return request.requested_at or datetime.min


class ServiceLifecycleManager:
    """
    Orchestrates service requests.

    Features:
    - Identity keys of the form <CATEGORY>_<epochMillis>_<random suffix>
    - Every transition is fetch, validate, produce a new value, update
    - Scheduling checks: future time, weekend availability, provider slot overlap
    - Mutations run under one lock so a transition and its conflict scan see a stable view
    """

    def __init__(self, repository: Optional[IRepository] = None, slot_hours: float = DEFAULT_SLOT_HOURS,
                 key_suffix_max: int = DEFAULT_KEY_SUFFIX_MAX, now: Callable[[], datetime] = datetime.now,
                 rng: Optional[random.Random] = None):
        if slot_hours <= 0:
            raise InvalidArgumentError(f"slot_hours must be positive: {slot_hours}", field="slot_hours")
        if key_suffix_max < 1:
            raise InvalidArgumentError(f"key_suffix_max must be >= 1: {key_suffix_max}", field="key_suffix_max")

        self.repository = repository if repository is not None else InMemoryRepository("services")
        self.slot = timedelta(hours=slot_hours)
        self.key_suffix_max = key_suffix_max
        self._now = now
        self._rng = rng or random.Random()
        self._lock = threading.RLock()

    # -------- Creation --------

    def generate_key(self, service_type: ServiceType) -> str:
        """Best-effort unique key; collisions are possible but unlikely."""
        epoch_millis = int(self._now().timestamp() * 1000)
        suffix = self._rng.randrange(self.key_suffix_max)
        return f"{service_type.name}_{epoch_millis}_{suffix}"

    def request_service(self, service_type, description: str, provider_name: str,
                        estimated_cost: Optional[float] = None, requested_by: Optional[str] = None,
                        requirements: Optional[Iterable[str]] = None,
                        tags: Optional[Iterable[str]] = None) -> ServiceRequest:
        """Create a request in REQUESTED state and store it."""
        # Deferred: the boundary models import this package
        from ..api.schemas import ServiceRequestCreate

        if isinstance(service_type, str):
            try:
                service_type = ServiceType[service_type.strip().upper()]
            except KeyError:
                raise InvalidArgumentError(f"Unknown service type: {service_type}", operation="request",
                                           field="service_type") from None

        try:
            data = ServiceRequestCreate(
                service_type=service_type,
                description=description,
                provider_name=provider_name,
                requested_by=requested_by,
                estimated_cost=estimated_cost,
                requirements=list(requirements or []),
                tags=list(tags or []),
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            logger.warning(f"Service request rejected: {first.get('msg')}")
            raise InvalidArgumentError(f"Invalid service request: {first.get('msg')}", operation="request",
                                       field=field) from e

        with self._lock:
            service_id = self._unused_key(data.service_type)
            request = ServiceRequest(
                service_id=service_id,
                service_type=data.service_type,
                description=data.description,
                provider_name=data.provider_name,
                requested_by=data.requested_by,
                estimated_cost=data.estimated_cost,
                requested_at=self._now(),
                requirements=tuple(data.requirements),
                tags=frozenset(data.tags),
            )
            saved = self.repository.save(request)

        logger.info(f"Service requested successfully: {service_id}")
        audit_event("service_requested", {"key": service_id},
                    {"type": data.service_type.name, "provider": data.provider_name})
        return saved

    def _unused_key(self, service_type: ServiceType) -> str:
        """Generate keys until one is free; an existing request is never overwritten."""
        for _ in range(KEY_GENERATION_ATTEMPTS):
            service_id = self.generate_key(service_type)
            if not self.repository.exists(service_id):
                return service_id

        logger.warning(f"No free service ID after {KEY_GENERATION_ATTEMPTS} attempts: last tried {service_id}")
        raise InvalidArgumentError(f"Could not generate a unique service ID after {KEY_GENERATION_ATTEMPTS} attempts",
                                   key=service_id, operation="request", field="service_id")

    # -------- Transitions --------

    def schedule_service(self, key: str, scheduled_time: datetime) -> ServiceRequest:
        """REQUESTED -> SCHEDULED at scheduled_time."""
        self._require_key(key, "schedule")
        if not isinstance(scheduled_time, datetime):
            raise InvalidArgumentError("Scheduled time is required", key=key, operation="schedule",
                                       field="scheduled_time")

        with self._lock:
            current = self._load(key, "schedule")
            self._check_transition(current, ServiceStatus.SCHEDULED, "schedule")
            self._validate_schedule(current, scheduled_time)
            return self._apply(current, ServiceStatus.SCHEDULED, "schedule", at=scheduled_time)

    def start_service(self, key: str) -> ServiceRequest:
        """SCHEDULED -> IN_PROGRESS."""
        return self._transition(key, ServiceStatus.IN_PROGRESS, "start", stamp=True)

    def complete_service(self, key: str) -> ServiceRequest:
        """IN_PROGRESS -> COMPLETED, stamping the completion time."""
        return self._transition(key, ServiceStatus.COMPLETED, "complete", stamp=True)

    def cancel_service(self, key: str) -> ServiceRequest:
        """Any non-terminal state -> CANCELLED."""
        return self._transition(key, ServiceStatus.CANCELLED, "cancel")

    def fail_service(self, key: str, reason: str) -> ServiceRequest:
        """IN_PROGRESS -> FAILED with a reason."""
        if reason is None or not reason.strip():
            raise InvalidArgumentError("Failure reason cannot be empty", key=key, operation="fail", field="reason")
        return self._transition(key, ServiceStatus.FAILED, "fail", reason=reason)

    def _transition(self, key: str, target: ServiceStatus, operation: str, stamp: bool = False,
                    reason: Optional[str] = None) -> ServiceRequest:
        self._require_key(key, operation)
        with self._lock:
            current = self._load(key, operation)
            self._check_transition(current, target, operation)
            return self._apply(current, target, operation, at=self._now() if stamp else None, reason=reason)

    def _load(self, key: str, operation: str) -> ServiceRequest:
        current = self.repository.find_by_key(key.strip())
        if current is None:
            logger.warning(f"Service not found for {operation}: {key}")
            raise NotFoundError(key, operation=operation, entity="service")
        return current

    def _check_transition(self, current: ServiceRequest, target: ServiceStatus, operation: str) -> None:
        if not current.can_transition_to(target):
            logger.log_transition_rejected(current.key, current.status.name, target.name, operation)
            raise InvalidStateTransitionError(current.key, current.status, target, operation=operation)

    def _apply(self, current: ServiceRequest, target: ServiceStatus, operation: str,
               at: Optional[datetime] = None, reason: Optional[str] = None) -> ServiceRequest:
        changed = current.transition_to(target, at=at, reason=reason)
        updated = self.repository.update(changed)
        if updated is None:
            # Removed between load and write by someone outside the manager
            raise NotFoundError(current.key, operation=operation, entity="service")

        logger.log_transition(current.key, current.status.name, target.name, operation)
        audit_event(f"service_{operation}", {"key": current.key},
                    {"from": current.status.name, "to": target.name})
        return updated

    def _validate_schedule(self, request: ServiceRequest, scheduled_time: datetime) -> None:
        now = self._now()
        if (scheduled_time.tzinfo is None) != (now.tzinfo is None):
            raise InvalidArgumentError("Scheduled time must match the clock's timezone awareness",
                                       key=request.key, operation="schedule", field="scheduled_time")

        if scheduled_time <= now:
            self._conflict(request, "Cannot schedule service in the past",
                           {"scheduled_time": scheduled_time.isoformat()})

        if scheduled_time.weekday() >= 5 and not request.service_type.available_on_weekends:
            self._conflict(request, "Service type not available on weekends",
                           {"service_type": request.service_type.name})

        clash = self.find_provider_conflict(request.provider_name, scheduled_time, exclude_key=request.key)
        if clash is not None:
            self._conflict(request, "Provider has scheduling conflict",
                           {"provider": request.provider_name, "conflicting_key": clash.key})

    def _conflict(self, request: ServiceRequest, reason: str, details: Dict) -> None:
        logger.log_scheduling_conflict(request.key, reason, details)
        raise SchedulingConflictError(request.key, reason)

    def slots_overlap(self, existing: datetime, proposed: datetime) -> bool:
        """Two [t, t + slot) windows overlap iff they intersect."""
        return proposed < existing + self.slot and proposed + self.slot > existing

    def find_provider_conflict(self, provider_name: str, scheduled_time: datetime,
                               exclude_key: Optional[str] = None) -> Optional[ServiceRequest]:
        """First SCHEDULED request of the same provider whose slot overlaps scheduled_time."""
        provider = _normalize_name(provider_name)

        def clashes(other: ServiceRequest) -> bool:
            return (other.key != exclude_key
                    and other.status is ServiceStatus.SCHEDULED
                    and other.scheduled_at is not None
                    and _normalize_name(other.provider_name) == provider
                    and self.slots_overlap(other.scheduled_at, scheduled_time))

        return self.repository.find_first_matching(clashes)

    def _require_key(self, key: str, operation: str) -> None:
        if not isinstance(key, str) or not key.strip():
            raise InvalidArgumentError("Service ID must be a non-empty string", key=key, operation=operation,
                                       field="key")

    # -------- Queries --------

    def find_by_key(self, key: Optional[str]) -> Optional[ServiceRequest]:
        if not isinstance(key, str) or not key.strip():
            return None
        return self.repository.find_by_key(key.strip())

    def by_type(self, service_type: Optional[ServiceType]) -> List[ServiceRequest]:
        if service_type is None:
            return []
        return sorted(self.repository.find_all_matching(lambda r: r.service_type is service_type),
                      key=_requested_order)

    def by_status(self, status: Optional[ServiceStatus]) -> List[ServiceRequest]:
        if status is None:
            return []
        return sorted(self.repository.find_all_matching(lambda r: r.status is status), key=_requested_order)

    def by_requester(self, requested_by: Optional[str]) -> List[ServiceRequest]:
        """Newest first."""
        if requested_by is None or not requested_by.strip():
            return []
        wanted = _normalize_name(requested_by)
        matches = self.repository.find_all_matching(lambda r: _normalize_name(r.requested_by) == wanted)
        return sorted(matches, key=_requested_order, reverse=True)

    def by_provider(self, provider_name: Optional[str]) -> List[ServiceRequest]:
        if provider_name is None or not provider_name.strip():
            return []
        wanted = _normalize_name(provider_name)
        matches = self.repository.find_all_matching(lambda r: _normalize_name(r.provider_name) == wanted)
        return sorted(matches, key=_requested_order)

    def find_all_matching(self, predicate: Optional[Callable[[ServiceRequest], bool]]) -> List[ServiceRequest]:
        return sorted(self.repository.find_all_matching(predicate), key=_requested_order)

    def statistics(self) -> ServiceStatistics:
        requests = self.repository.list_all()
        return ServiceStatistics(
            total_services=len(requests),
            status_counts=dict(Counter(r.status for r in requests)),
            type_counts=dict(Counter(r.service_type for r in requests)),
        )
