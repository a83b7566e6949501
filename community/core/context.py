"""
Startup wiring. Builds the repositories and services once and hands them out as one context object.
"""

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from util.logging import logger

from . import config
from .lifecycle import ServiceLifecycleManager
from .repository import InMemoryRepository
from .residents import ResidentDirectory


@dataclass
class CommunityContext:
    """Everything a UI or script needs, constructed once at startup and passed by reference."""

    residents: ResidentDirectory
    services: ServiceLifecycleManager
    resident_repository: InMemoryRepository
    service_repository: InMemoryRepository

    def health_check(self) -> dict:
        return {
            "version": config.VERSION,
            "residents": self.resident_repository.stats(),
            "services": self.service_repository.stats(),
        }


def build_context(now: Callable[[], datetime] = datetime.now, rng: Optional[random.Random] = None,
                  slot_hours: Optional[float] = None, key_suffix_max: Optional[int] = None,
                  strict_uniqueness: Optional[bool] = None) -> CommunityContext:
    """Read configuration once; explicit arguments override it."""
    issues = config.validate_config()
    if issues:
        raise ValueError(f"Community configuration invalid: {issues}")

    logger.set_level(config.get_log_level())

    resident_repository = InMemoryRepository("residents")
    service_repository = InMemoryRepository("services")

    residents = ResidentDirectory(
        resident_repository,
        strict_uniqueness=config.STRICT_UNIQUENESS if strict_uniqueness is None else strict_uniqueness,
    )
    services = ServiceLifecycleManager(
        service_repository,
        slot_hours=config.SERVICE_SLOT_HOURS if slot_hours is None else slot_hours,
        key_suffix_max=config.SERVICE_KEY_SUFFIX_MAX if key_suffix_max is None else key_suffix_max,
        now=now,
        rng=rng,
    )

    logger.info(f"Community context ready (version {config.VERSION})")
    return CommunityContext(
        residents=residents,
        services=services,
        resident_repository=resident_repository,
        service_repository=service_repository,
    )
