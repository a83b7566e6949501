"""
Error taxonomy for the community data layer.
Each error carries its kind, the entity key involved and the operation that failed.
"""

from typing import Any, Dict, Optional


class CommunityError(Exception):
    """Base class for every structured failure raised by the core."""

    kind = "community_error"

    def __init__(self, message: str, key: Any = None, operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.key = key
        self.operation = operation or "unknown"
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation for display layers."""
        data = {
            "kind": self.kind,
            "message": self.message,
            "key": self.key,
            "operation": self.operation,
        }
        data.update(self.details)
        return data


class InvalidArgumentError(CommunityError, ValueError):
    """A null, blank or out-of-domain value reached the core."""

    kind = "invalid_argument"

    def __init__(self, message: str, key: Any = None, operation: Optional[str] = None,
                 field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(message, key=key, operation=operation, details=details)
        self.field = field


class NotFoundError(CommunityError, LookupError):
    """A write or transition referenced a key absent from the store."""

    kind = "not_found"

    def __init__(self, key: Any, operation: Optional[str] = None, entity: str = "entity"):
        super().__init__(f"{entity} '{key}' not found", key=key, operation=operation,
                         details={"entity": entity})
        self.entity = entity


class DuplicateEntityError(CommunityError):
    """A uniqueness constraint was violated; nothing was written."""

    kind = "duplicate_entity"

    def __init__(self, constraint: str, value: Any, key: Any = None, operation: Optional[str] = "save"):
        super().__init__(
            f"Duplicate {constraint}: '{value}' is already taken",
            key=key,
            operation=operation,
            details={"constraint": constraint, "value": value},
        )
        self.constraint = constraint
        self.value = value


class InvalidStateTransitionError(CommunityError):
    """The attempted transition is not in the service request state table."""

    kind = "invalid_state_transition"

    def __init__(self, key: Any, current: Any, target: Any, operation: Optional[str] = "state_transition"):
        current_name = getattr(current, "name", current)
        target_name = getattr(target, "name", target)
        super().__init__(
            f"Invalid state transition for service '{key}': cannot go from '{current_name}' to '{target_name}'",
            key=key,
            operation=operation,
            details={"current": current_name, "target": target_name},
        )
        self.current = current
        self.target = target


class SchedulingConflictError(CommunityError):
    """Scheduling validation failed (past time, weekend restriction, provider overlap)."""

    kind = "scheduling_conflict"

    def __init__(self, key: Any, reason: str, operation: Optional[str] = "schedule"):
        super().__init__(f"Scheduling conflict for service '{key}': {reason}", key=key,
                         operation=operation, details={"reason": reason})
        self.reason = reason
