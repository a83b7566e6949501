# Package initialization for the core module
from .errors import (
    CommunityError,
    InvalidArgumentError,
    NotFoundError,
    DuplicateEntityError,
    InvalidStateTransitionError,
    SchedulingConflictError,
)
from .identity import KeyedEntity
from .repository import IRepository, InMemoryRepository, RepositoryStats
from .uniqueness import UniqueConstraint, UniquenessGuard
from .service_request import ServiceRequest, ServiceStatus, ServiceType, TRANSITIONS, can_transition
from .resident import ResidentRecord, ResidentStatus, Role
from .residents import ResidentDirectory, ResidentStatistics
from .lifecycle import ServiceLifecycleManager, ServiceStatistics
from .context import CommunityContext, build_context

__all__ = [
    'CommunityError',
    'InvalidArgumentError',
    'NotFoundError',
    'DuplicateEntityError',
    'InvalidStateTransitionError',
    'SchedulingConflictError',
    'KeyedEntity',
    'IRepository',
    'InMemoryRepository',
    'RepositoryStats',
    'UniqueConstraint',
    'UniquenessGuard',
    'ServiceRequest',
    'ServiceStatus',
    'ServiceType',
    'TRANSITIONS',
    'can_transition',
    'ResidentRecord',
    'ResidentStatus',
    'Role',
    'ResidentDirectory',
    'ResidentStatistics',
    'ServiceLifecycleManager',
    'ServiceStatistics',
    'CommunityContext',
    'build_context',
]
