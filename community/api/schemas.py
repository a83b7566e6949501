"""
Boundary models: validated input for the core and plain views handed back to display layers.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..core.resident import ResidentRecord, Role
from ..core.service_request import ServiceRequest, ServiceType


class ServiceRequestCreate(BaseModel):
    service_type: ServiceType
    description: str
    provider_name: str
    requested_by: str
    estimated_cost: Optional[float] = None
    requirements: List[str] = []
    tags: List[str] = []

    @field_validator('description', 'provider_name', 'requested_by')
    @classmethod
    def text_must_not_be_blank(cls, v, info):
        if not v.strip():
            raise ValueError(f'{info.field_name} cannot be empty')
        return v.strip()

    @field_validator('estimated_cost')
    @classmethod
    def cost_must_not_be_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('estimated_cost cannot be negative')
        return v


class ResidentCreate(BaseModel):
    email: str
    name: str
    apartment: str
    phone: Optional[str] = None
    role: Role = Role.RESIDENT
    unit_count: Optional[int] = None

    @field_validator('email', 'name', 'apartment')
    @classmethod
    def text_must_not_be_blank(cls, v, info):
        if not v.strip():
            raise ValueError(f'{info.field_name} cannot be empty')
        return v.strip()

    @field_validator('unit_count')
    @classmethod
    def unit_count_must_be_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError('unit_count must be at least 1')
        return v

    def to_record(self) -> ResidentRecord:
        return ResidentRecord(
            email=self.email,
            name=self.name,
            apartment=self.apartment,
            phone=self.phone,
            role=self.role,
            unit_count=self.unit_count,
        )


class ServiceRequestView(BaseModel):
    model_config = ConfigDict(frozen=True)

    service_id: str
    service_type: str
    service_type_display: str
    description: str
    provider_name: str
    requested_by: str
    estimated_cost: Optional[float]
    status: str
    status_description: str
    requested_at: Optional[datetime]
    scheduled_at: Optional[datetime]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    failure_reason: Optional[str]
    requirements: List[str]
    tags: List[str]

    @classmethod
    def from_entity(cls, request: ServiceRequest) -> 'ServiceRequestView':
        return cls(
            service_id=request.service_id,
            service_type=request.service_type.name,
            service_type_display=request.service_type.display_name,
            description=request.description,
            provider_name=request.provider_name,
            requested_by=request.requested_by,
            estimated_cost=request.estimated_cost,
            status=request.status.name,
            status_description=request.status.description,
            requested_at=request.requested_at,
            scheduled_at=request.scheduled_at,
            started_at=request.started_at,
            completed_at=request.completed_at,
            failure_reason=request.failure_reason,
            requirements=list(request.requirements),
            tags=sorted(request.tags),
        )


class ResidentView(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    name: str
    apartment: str
    status: str
    status_description: str
    phone: Optional[str]
    role: str
    unit_count: Optional[int]
    permissions: List[str]

    @classmethod
    def from_entity(cls, resident: ResidentRecord) -> 'ResidentView':
        return cls(
            email=resident.email,
            name=resident.name,
            apartment=resident.apartment,
            status=resident.status.name,
            status_description=resident.status.description,
            phone=resident.phone,
            role=resident.role.name,
            unit_count=resident.unit_count,
            permissions=sorted(resident.permissions),
        )


class ServiceStatisticsView(BaseModel):
    total_services: int
    status_counts: Dict[str, int]
    type_counts: Dict[str, int]

    @classmethod
    def from_stats(cls, stats) -> 'ServiceStatisticsView':
        return cls(
            total_services=stats.total_services,
            status_counts={status.name: count for status, count in stats.status_counts.items()},
            type_counts={service_type.name: count for service_type, count in stats.type_counts.items()},
        )


class ResidentStatisticsView(BaseModel):
    total_residents: int
    active_residents: int
    inactive_residents: int
    occupied_apartments: int

    @classmethod
    def from_stats(cls, stats) -> 'ResidentStatisticsView':
        return cls(
            total_residents=stats.total_residents,
            active_residents=stats.active_residents,
            inactive_residents=stats.inactive_residents,
            occupied_apartments=stats.occupied_apartments,
        )

