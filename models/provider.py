"""
Provider and Slot data models for the OPD Token Allocator.

This module defines the 'Supply' side of the allocator:
1. Providers (doctors with working hours)
2. Slots (one-hour, fixed-capacity containers of tokens)
"""

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .token import Token

SLOT_CAPACITY = 10  # Same for every slot, not configurable per provider

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*$")


def format_slot_time(hour: int) -> str:
    """09 -> '09:00'"""
    return f"{hour:02d}:00"


def parse_slot_hour(value) -> Optional[int]:
    """Hour component of 'HH:MM' (or a bare hour). None if unparsable."""
    if isinstance(value, int):
        return value
    match = _TIME_PATTERN.match(str(value)) if value is not None else None
    if not match:
        return None
    return int(match.group(1))


def normalize_slot_time(value) -> str:
    """Zero-pad the hour so '9:00' and '09:00' address the same slot."""
    match = _TIME_PATTERN.match(str(value)) if value is not None else None
    if not match:
        return str(value)
    minutes = match.group(2) or "00"
    return f"{int(match.group(1)):02d}:{minutes}"


class Slot(BaseModel):
    """
    One hour of a provider's day.
    Available capacity is always derived from the occupant list.
    """
    provider_id: str
    start_time: str = Field(description="'HH:00'")
    end_time: str = Field(description="Exactly one hour after start_time")
    max_capacity: int = Field(default=SLOT_CAPACITY, ge=1)
    tokens: List[Token] = Field(default_factory=list, description="Occupants in insertion order")

    @property
    def hour(self) -> int:
        return parse_slot_hour(self.start_time)

    @property
    def available_capacity(self) -> int:
        return self.max_capacity - len(self.tokens)

    @property
    def is_full(self) -> bool:
        return self.available_capacity <= 0

    def contains(self, token_id: str) -> bool:
        return any(t.id == token_id for t in self.tokens)

    def add_token(self, token: Token) -> bool:
        """Append an occupant. Refuses when full or already present."""
        if self.is_full or self.contains(token.id):
            return False
        self.tokens.append(token)
        return True

    def remove_token(self, token_id: str) -> Optional[Token]:
        for index, token in enumerate(self.tokens):
            if token.id == token_id:
                return self.tokens.pop(index)
        return None


class Provider(BaseModel):
    """
    A resource owner (doctor) whose working hours define its slots.
    """
    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Display name")
    specialization: str = Field(default="General", description="Specialization tag")

    working_hours_start: int = Field(ge=0, le=23, description="First working hour (inclusive)")
    working_hours_end: int = Field(ge=1, le=24, description="Last working hour (exclusive)")

    # Materialized by the engine at registration, keyed by slot start time
    slots: Dict[str, Slot] = Field(default_factory=dict, exclude=True)

    @field_validator("working_hours_start", "working_hours_end", mode="before")
    @classmethod
    def accept_clock_strings(cls, v):
        """Allow '09:00' style input; minutes are truncated to the hour."""
        if isinstance(v, str):
            hour = parse_slot_hour(v)
            if hour is None:
                raise ValueError(f"Unrecognised working-hours value: {v!r}")
            return hour
        return v

    @model_validator(mode="after")
    def validate_hours(self):
        if self.working_hours_start >= self.working_hours_end:
            raise ValueError("Working hours end must be strictly after start")
        return self

    @property
    def working_hours(self) -> str:
        return f"{format_slot_time(self.working_hours_start)}-{format_slot_time(self.working_hours_end)}"

    def build_slots(self, capacity: int = SLOT_CAPACITY) -> Dict[str, Slot]:
        """One slot per whole hour in [start, end), in chronological order."""
        slots = {}
        for hour in range(self.working_hours_start, self.working_hours_end):
            start = format_slot_time(hour)
            slots[start] = Slot(
                provider_id=self.id,
                start_time=start,
                end_time=format_slot_time(hour + 1),
                max_capacity=capacity,
            )
        return slots

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "DOC001",
            "name": "Dr. Sarah Johnson",
            "specialization": "General Medicine",
            "working_hours_start": "09:00",
            "working_hours_end": "17:00",
        }
    })
