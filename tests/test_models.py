import pytest
from pydantic import ValidationError

import allocator
from models import (
    InvalidSource,
    AllocationOutcome,
    Provider,
    Slot,
    SLOT_CAPACITY,
    Token,
    TokenSource,
    TokenStatus,
    normalize_slot_time,
    parse_slot_hour,
    priority_for,
    resolve_source,
)


def make_token(priority_source=TokenSource.WALKIN, patient="P1"):
    return Token(
        patient_id=patient,
        provider_id="DOC1",
        slot_time="09:00",
        source=priority_source,
        priority=priority_for(priority_source),
    )


def test_priority_table():
    assert priority_for(TokenSource.EMERGENCY) == 10
    assert priority_for(TokenSource.PRIORITY) == 8
    assert priority_for(TokenSource.FOLLOWUP) == 6
    assert priority_for(TokenSource.ONLINE) == 4
    assert priority_for(TokenSource.WALKIN) == 2


def test_unknown_source_defaults_to_walkin():
    assert resolve_source("telepathy") == TokenSource.WALKIN
    assert resolve_source(None) == TokenSource.WALKIN
    assert resolve_source(" Online ") == TokenSource.ONLINE


def test_unknown_source_strict_raises():
    with pytest.raises(InvalidSource) as exc:
        resolve_source("telepathy", strict=True)
    assert exc.value.value == "telepathy"
    assert "walkin" in exc.value.valid


def test_token_defaults():
    token = make_token()
    assert token.status == TokenStatus.ALLOCATED
    assert token.id
    assert token.is_active
    assert make_token().id != token.id


def test_token_priority_is_frozen():
    token = make_token()
    with pytest.raises(ValidationError):
        token.priority = 10
    token.slot_time = "10:00"
    assert token.slot_time == "10:00"


def test_token_snapshot_is_detached():
    token = make_token()
    copy = token.snapshot()
    copy.status = TokenStatus.CANCELLED
    assert token.status == TokenStatus.ALLOCATED


def test_slot_capacity_is_derived():
    slot = Slot(provider_id="DOC1", start_time="09:00", end_time="10:00")
    assert slot.max_capacity == SLOT_CAPACITY
    assert slot.available_capacity == 10

    tokens = [make_token(patient=f"P{i}") for i in range(SLOT_CAPACITY)]
    for t in tokens:
        assert slot.add_token(t)
    assert slot.available_capacity == 0
    assert slot.is_full
    assert not slot.add_token(make_token())

    removed = slot.remove_token(tokens[3].id)
    assert removed is tokens[3]
    assert slot.available_capacity == 1
    assert slot.remove_token("missing") is None


def test_slot_rejects_duplicate_token():
    slot = Slot(provider_id="DOC1", start_time="09:00", end_time="10:00")
    token = make_token()
    assert slot.add_token(token)
    assert not slot.add_token(token)
    assert len(slot.tokens) == 1


def test_provider_accepts_clock_strings():
    provider = Provider(id="D", name="Dr. D", working_hours_start="09:00", working_hours_end="17:30")
    assert provider.working_hours_start == 9
    assert provider.working_hours_end == 17
    assert provider.working_hours == "09:00-17:00"


def test_provider_rejects_inverted_hours():
    with pytest.raises(ValidationError):
        Provider(id="D", name="Dr. D", working_hours_start=12, working_hours_end=9)
    with pytest.raises(ValidationError):
        Provider(id="D", name="Dr. D", working_hours_start="noon", working_hours_end=18)


def test_build_slots_one_per_hour():
    provider = Provider(id="D", name="Dr. D", working_hours_start=9, working_hours_end=12)
    slots = provider.build_slots()
    assert list(slots) == ["09:00", "10:00", "11:00"]
    assert slots["11:00"].end_time == "12:00"
    assert all(s.provider_id == "D" for s in slots.values())


def test_time_helpers():
    assert parse_slot_hour("09:00") == 9
    assert parse_slot_hour("9") == 9
    assert parse_slot_hour("lunch") is None
    assert normalize_slot_time("9:00") == "09:00"
    assert normalize_slot_time("lunch") == "lunch"


def test_failed_outcome_carries_offending_value():
    outcome = AllocationOutcome.failed(InvalidSource("x"))
    assert not outcome.success
    assert outcome.error == "InvalidSource"
    assert outcome.error_value == "x"


def test_error_taxonomy_is_shared_with_allocator():
    assert allocator.InvalidSource is InvalidSource
    with pytest.raises(allocator.AllocationError):
        resolve_source("telepathy", strict=True)
