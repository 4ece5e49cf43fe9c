"""
Data models package for the OPD Token Allocator.

This package exports the three core pillars of the data architecture:
1. Demand (Token, TokenSource, TokenStatus)
2. Supply (Provider, Slot)
3. Output (AllocationOutcome)
"""

from .token import (
    Token,
    TokenSource,
    TokenStatus,
    SOURCE_PRIORITIES,
    DEFAULT_SOURCE,
    resolve_source,
    priority_for
)

from .provider import (
    Provider,
    Slot,
    SLOT_CAPACITY,
    format_slot_time,
    parse_slot_hour,
    normalize_slot_time
)

from .outcome import (
    AllocationOutcome,
    ALTERNATIVE_SLOT_NOTE
)

from .errors import (
    AllocationError,
    ProviderNotFound,
    TokenNotFound,
    SlotNotFound,
    NoCapacity,
    InvalidSource,
    InvalidRequest
)

__all__ = [
    # --- Demand Models ---
    "Token",
    "TokenSource",
    "TokenStatus",
    "SOURCE_PRIORITIES",
    "DEFAULT_SOURCE",
    "resolve_source",
    "priority_for",

    # --- Supply Models ---
    "Provider",
    "Slot",
    "SLOT_CAPACITY",
    "format_slot_time",
    "parse_slot_hour",
    "normalize_slot_time",

    # --- Output Models ---
    "AllocationOutcome",
    "ALTERNATIVE_SLOT_NOTE",

    # --- Errors ---
    "AllocationError",
    "ProviderNotFound",
    "TokenNotFound",
    "SlotNotFound",
    "NoCapacity",
    "InvalidSource",
    "InvalidRequest",
]
