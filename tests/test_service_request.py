"""
Service request state machine tests - transition table closure and immutable transitions.
"""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta

import pytest

from community.core.errors import InvalidArgumentError, InvalidStateTransitionError
from community.core.service_request import (
    TERMINAL_STATES,
    TRANSITIONS,
    ServiceRequest,
    ServiceStatus,
    ServiceType,
    can_transition,
)

ALLOWED = {
    (ServiceStatus.REQUESTED, ServiceStatus.SCHEDULED),
    (ServiceStatus.REQUESTED, ServiceStatus.CANCELLED),
    (ServiceStatus.SCHEDULED, ServiceStatus.IN_PROGRESS),
    (ServiceStatus.SCHEDULED, ServiceStatus.CANCELLED),
    (ServiceStatus.IN_PROGRESS, ServiceStatus.COMPLETED),
    (ServiceStatus.IN_PROGRESS, ServiceStatus.FAILED),
}

ALL_PAIRS = [(a, b) for a in ServiceStatus for b in ServiceStatus]

T0 = datetime(2026, 10, 19, 9, 0, 0)


def make_request(**overrides):
    fields = dict(
        service_id="CLEANING_1_1",
        service_type=ServiceType.CLEANING,
        description="Deep clean",
        provider_name="Acme",
        requested_by="101",
        requested_at=T0,
    )
    fields.update(overrides)
    return ServiceRequest(**fields)


class TestTransitionTable:
    """The table and can_transition."""

    @pytest.mark.parametrize("current,target", ALL_PAIRS)
    def test_can_transition_matches_table(self, current, target):
        """Test every pair against the allowed edge list."""
        assert can_transition(current, target) == ((current, target) in ALLOWED)

    def test_terminal_states(self):
        """Test exactly the three end states are terminal."""
        assert TERMINAL_STATES == {ServiceStatus.COMPLETED, ServiceStatus.CANCELLED, ServiceStatus.FAILED}
        for status in TERMINAL_STATES:
            assert status.is_terminal
            assert TRANSITIONS[status] == frozenset()

    def test_every_status_has_a_row(self):
        """Test the table covers every status."""
        assert set(TRANSITIONS) == set(ServiceStatus)


class TestServiceType:
    """Category metadata."""

    @pytest.mark.parametrize("service_type,weekends", [
        (ServiceType.CLEANING, True),
        (ServiceType.MAINTENANCE, True),
        (ServiceType.SECURITY, True),
        (ServiceType.GARDENING, True),
        (ServiceType.PEST_CONTROL, False),
        (ServiceType.POOL_MAINTENANCE, False),
        (ServiceType.WASTE_MANAGEMENT, False),
    ])
    def test_weekend_availability(self, service_type, weekends):
        """Test per-type weekend flags."""
        assert service_type.available_on_weekends is weekends

    def test_duration_range(self):
        """Test the informational duration hint."""
        assert ServiceType.CLEANING.duration_range == (2.0, 4.0)
        assert ServiceType.PEST_CONTROL.display_name == "Pest Control"


class TestServiceRequestEntity:
    """Construction and normalization."""

    def test_defaults(self):
        """Test a new request starts REQUESTED with only requested_at set."""
        request = make_request()
        assert request.status is ServiceStatus.REQUESTED
        assert request.key == "CLEANING_1_1"
        assert request.has_key()
        assert request.scheduled_at is None
        assert request.completed_at is None
        assert "cleaning" in request.tags

    def test_text_fields_trimmed(self):
        """Test whitespace is stripped."""
        request = make_request(description="  Deep clean ", provider_name=" Acme ")
        assert request.description == "Deep clean"
        assert request.provider_name == "Acme"

    @pytest.mark.parametrize("field_name", ["service_id", "description", "provider_name", "requested_by"])
    def test_blank_required_field_rejected(self, field_name):
        """Test blank required text raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            make_request(**{field_name: "  "})

    def test_requirements_and_tags_cleaned(self):
        """Test blank requirements dropped and tags lower-cased."""
        request = make_request(requirements=[" bring ladder ", "", None], tags=["Urgent"])
        assert request.requirements == ("bring ladder",)
        assert request.tags == frozenset({"urgent", "cleaning"})
        assert request.requirements_containing("LADDER") == ("bring ladder",)

    def test_immutable(self):
        """Test fields cannot be assigned in place."""
        request = make_request()
        with pytest.raises(FrozenInstanceError):
            request.status = ServiceStatus.COMPLETED


class TestTransitionTo:
    """Value-producing transitions."""

    def test_schedule_records_time(self):
        """Test entering SCHEDULED stamps scheduled_at and leaves the original untouched."""
        original = make_request()
        when = T0 + timedelta(hours=1)
        scheduled = original.transition_to(ServiceStatus.SCHEDULED, at=when)

        assert scheduled.status is ServiceStatus.SCHEDULED
        assert scheduled.scheduled_at == when
        assert original.status is ServiceStatus.REQUESTED
        assert original.scheduled_at is None

    def test_schedule_requires_time(self):
        """Test SCHEDULED without a time is an invalid argument."""
        with pytest.raises(InvalidArgumentError):
            make_request().transition_to(ServiceStatus.SCHEDULED)

    def test_complete_requires_time(self):
        """Test COMPLETED without a time is an invalid argument."""
        running = make_request(status=ServiceStatus.IN_PROGRESS, scheduled_at=T0)
        with pytest.raises(InvalidArgumentError):
            running.transition_to(ServiceStatus.COMPLETED)

    def test_full_path_keeps_earlier_stamps(self):
        """Test timestamps are set once and carried forward."""
        when = T0 + timedelta(hours=1)
        done_at = T0 + timedelta(hours=3)
        request = (make_request()
                   .transition_to(ServiceStatus.SCHEDULED, at=when)
                   .transition_to(ServiceStatus.IN_PROGRESS, at=when)
                   .transition_to(ServiceStatus.COMPLETED, at=done_at))

        assert request.status is ServiceStatus.COMPLETED
        assert request.requested_at == T0
        assert request.scheduled_at == when
        assert request.started_at == when
        assert request.completed_at == done_at

    def test_failed_records_reason(self):
        """Test FAILED keeps the reason."""
        running = make_request(status=ServiceStatus.IN_PROGRESS, scheduled_at=T0)
        failed = running.transition_to(ServiceStatus.FAILED, reason=" pump broke ")
        assert failed.failure_reason == "pump broke"

    @pytest.mark.parametrize("current,target", [p for p in ALL_PAIRS if p not in ALLOWED])
    def test_illegal_transition_raises(self, current, target):
        """Test illegal edges raise with current, target and key."""
        request = make_request(status=current)
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            request.transition_to(target, at=T0)

        error = exc_info.value
        assert error.current is current
        assert error.target is target
        assert error.key == "CLEANING_1_1"
