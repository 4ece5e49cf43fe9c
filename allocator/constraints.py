"""
Placement rules.

This module answers the binary question: "Can a token of priority P go into Slot S?"
and, when the slot is full, "Who gets bumped?"
"""

from typing import List, Optional

from models import Slot, Token


def has_lower_priority(slot: Slot, priority: int) -> bool:
    """True if any occupant is strictly below `priority`."""
    return any(t.priority < priority for t in slot.tokens)


def can_accept(slot: Slot, priority: int) -> bool:
    """Spare capacity, or something to preempt."""
    return slot.available_capacity > 0 or has_lower_priority(slot, priority)


def find_preemption_victim(occupants: List[Token], priority: int) -> Optional[Token]:
    """
    Lowest-priority occupant strictly below `priority`.
    Ties go to the earliest-inserted occupant; equal priorities are never bumped.
    """
    victim = None
    lowest = priority
    for token in occupants:
        if token.priority < lowest:
            lowest = token.priority
            victim = token
    return victim
