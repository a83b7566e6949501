"""
Resident directory - registration and lookup on top of a uniqueness-guarded repository.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from util.logging import audit_event, logger

from .errors import InvalidArgumentError, NotFoundError
from .repository import IRepository, InMemoryRepository
from .resident import ResidentRecord, ResidentStatus, normalize_apartment, normalize_email
from .uniqueness import UniqueConstraint, UniquenessGuard

EMAIL_CONSTRAINT = UniqueConstraint("email", lambda r: r.email, normalize_email)
APARTMENT_CONSTRAINT = UniqueConstraint("apartment", lambda r: r.apartment, normalize_apartment)


@dataclass(frozen=True)
class ResidentStatistics:
    total_residents: int
    active_residents: int
    inactive_residents: int
    occupied_apartments: int


class ResidentDirectory:
    """Registers, updates and queries residents; no two share an email or an apartment."""

    def __init__(self, repository: Optional[IRepository] = None, strict_uniqueness: bool = True):
        self.repository = repository if repository is not None else InMemoryRepository("residents")
        self.guard = UniquenessGuard(self.repository, [EMAIL_CONSTRAINT, APARTMENT_CONSTRAINT],
                                     strict=strict_uniqueness)

    def register(self, resident: ResidentRecord) -> ResidentRecord:
        """Register a new resident. Raises DuplicateEntityError on an email or apartment clash."""
        if resident is None:
            raise InvalidArgumentError("Resident cannot be None", operation="register", field="resident")

        saved = self.guard.save(resident)
        logger.info(f"Resident registered: {saved.name} ({saved.apartment})")
        audit_event("resident_registered", {"apartment": saved.apartment},
                    {"email": saved.email, "status": saved.status.name})
        return saved

    def update(self, resident: ResidentRecord) -> ResidentRecord:
        """Replace an existing resident. Raises NotFoundError if the email is unknown."""
        if resident is None:
            raise InvalidArgumentError("Resident cannot be None", operation="update", field="resident")

        updated = self.guard.update(resident)
        audit_event("resident_updated", {"apartment": updated.apartment},
                    {"email": updated.email, "status": updated.status.name})
        return updated

    def set_status(self, email: str, status: ResidentStatus) -> ResidentRecord:
        """Fetch, copy with the new status, and write back."""
        current = self.find_by_email(email)
        if current is None:
            raise NotFoundError(email, operation="set_status", entity="resident")
        return self.update(current.with_changes(status=status))

    def delete(self, email: str) -> bool:
        if email is None or not email.strip():
            raise InvalidArgumentError("Email cannot be empty", operation="delete", field="email")

        key = normalize_email(email)
        if not self.repository.delete_by_key(key):
            raise NotFoundError(key, operation="delete", entity="resident")

        audit_event("resident_deleted", {}, {"email": key})
        return True

    # -------- Queries --------

    def find_by_email(self, email: Optional[str]) -> Optional[ResidentRecord]:
        if email is None or not email.strip():
            return None
        return self.repository.find_by_key(normalize_email(email))

    def find_by_apartment(self, apartment: Optional[str]) -> Optional[ResidentRecord]:
        if apartment is None or not apartment.strip():
            return None
        wanted = normalize_apartment(apartment)
        return self.repository.find_first_matching(lambda r: r.apartment == wanted)

    def search_by_name(self, pattern: Optional[str]) -> List[ResidentRecord]:
        """Case-insensitive partial match, sorted by name."""
        if pattern is None or not pattern.strip():
            return []
        needle = pattern.strip().lower()
        matches = self.repository.find_all_matching(lambda r: needle in r.name.lower())
        return sorted(matches, key=lambda r: r.name)

    def list_sorted_by_apartment(self) -> List[ResidentRecord]:
        return sorted(self.repository.list_all(), key=lambda r: r.apartment)

    def by_status(self, status: Optional[ResidentStatus]) -> List[ResidentRecord]:
        if status is None:
            return []
        return sorted(self.repository.find_all_matching(lambda r: r.status is status), key=lambda r: r.name)

    def find_residents(self, predicate: Optional[Callable[[ResidentRecord], bool]]) -> List[ResidentRecord]:
        if predicate is None:
            return self.list_sorted_by_apartment()
        return sorted(self.repository.find_all_matching(predicate), key=lambda r: r.name)

    def count(self) -> int:
        return self.repository.count()

    def is_apartment_available(self, apartment: Optional[str]) -> bool:
        if apartment is None or not apartment.strip():
            return False
        return self.find_by_apartment(apartment) is None

    def occupied_apartments(self) -> List[str]:
        return sorted({r.apartment for r in self.repository.list_all()})

    def statistics(self) -> ResidentStatistics:
        residents = self.repository.list_all()
        return ResidentStatistics(
            total_residents=len(residents),
            active_residents=sum(1 for r in residents if r.status is ResidentStatus.ACTIVE),
            inactive_residents=sum(1 for r in residents if r.status is ResidentStatus.INACTIVE),
            occupied_apartments=len({r.apartment for r in residents}),
        )
