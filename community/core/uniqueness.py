"""
Uniqueness constraints enforced in front of a repository.
A candidate is rejected before any write when another live record shares a constrained value.
"""

import threading
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from util.logging import logger

from .errors import DuplicateEntityError, InvalidArgumentError, NotFoundError
from .repository import IRepository


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class UniqueConstraint:
    """A named rule: no two live entities may share extractor(entity)."""

    name: str
    extractor: Callable[[Any], Any]
    normalize: Callable[[Any], Any] = _identity

    def value_of(self, entity: Any) -> Any:
        value = self.extractor(entity)
        if value is None:
            return None
        return self.normalize(value)


class UniquenessGuard:
    """
    Check declared constraints, then delegate the write to the repository.

    With strict=True the scan and the write run inside one critical section owned by
    the guard, so two writers going through the same guard cannot both pass the check.
    Writes that bypass the guard are not covered.
    """

    def __init__(self, repository: IRepository, constraints: Sequence[UniqueConstraint], strict: bool = True):
        if repository is None:
            raise InvalidArgumentError("Repository cannot be None", field="repository")
        if not constraints:
            raise InvalidArgumentError("At least one uniqueness constraint is required", field="constraints")

        names = [c.name for c in constraints]
        if len(set(names)) != len(names):
            raise InvalidArgumentError(f"Constraint names must be unique: {names}", field="constraints")

        self.repository = repository
        self.constraints: Tuple[UniqueConstraint, ...] = tuple(constraints)
        self.strict = strict
        self._lock = threading.RLock()

    def _critical_section(self):
        return self._lock if self.strict else nullcontext()

    def find_conflict(self, entity: Any, exclude_key: Any = None) -> Optional[Tuple[UniqueConstraint, Any]]:
        """Return (constraint, candidate value) for the first violated constraint, or None."""
        for constraint in self.constraints:
            candidate_value = constraint.value_of(entity)
            if candidate_value is None:
                continue

            def clashes(existing, constraint=constraint, candidate_value=candidate_value):
                if exclude_key is not None and existing.key == exclude_key:
                    return False
                return constraint.value_of(existing) == candidate_value

            if self.repository.find_first_matching(clashes) is not None:
                return constraint, candidate_value
        return None

    def check(self, entity: Any, exclude_key: Any = None, operation: str = "save") -> None:
        """Raise DuplicateEntityError when entity violates any constraint."""
        conflict = self.find_conflict(entity, exclude_key=exclude_key)
        if conflict is None:
            return

        constraint, value = conflict
        key = getattr(entity, "key", None)
        logger.log_uniqueness_violation(constraint.name, value, key)
        raise DuplicateEntityError(constraint.name, value, key=key, operation=operation)

    def violations(self, entity: Any, exclude_key: Any = None) -> List[str]:
        """Names of every constraint the entity would violate."""
        names = []
        for constraint in self.constraints:
            candidate_value = constraint.value_of(entity)
            if candidate_value is None:
                continue
            match = self.repository.find_first_matching(
                lambda existing: (exclude_key is None or existing.key != exclude_key)
                and constraint.value_of(existing) == candidate_value
            )
            if match is not None:
                names.append(constraint.name)
        return names

    def save(self, entity: Any) -> Any:
        """Insert a new entity if no constraint is violated."""
        if entity is None:
            raise InvalidArgumentError("Entity cannot be None", operation="save", field="entity")

        with self._critical_section():
            self.check(entity, operation="save")
            return self.repository.save(entity)

    def update(self, entity: Any) -> Any:
        """Replace an existing entity; its own record does not count as a conflict."""
        if entity is None:
            raise InvalidArgumentError("Entity cannot be None", operation="update", field="entity")

        with self._critical_section():
            if not self.repository.exists(entity.key):
                raise NotFoundError(entity.key, operation="update")
            self.check(entity, exclude_key=entity.key, operation="update")
            updated = self.repository.update(entity)
            if updated is None:
                # Deleted by a writer that bypassed the guard
                raise NotFoundError(entity.key, operation="update")
            return updated
