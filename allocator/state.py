"""
Allocator State Management.

This module acts as the 'Memory' of the engine. It tracks:
1. Registered providers (and through them, every slot).
2. The global token registry (placed and cancelled tokens).
3. The waiting queue of tokens that currently hold no slot.
"""

from typing import Any, Dict, List, Optional

from models import Provider, Slot, Token, normalize_slot_time


class AllocatorState:
    """
    Maintains the mutable state of the allocator.
    Only TokenAllocationEngine writes to it.
    """

    def __init__(self):
        """Initialize empty allocator state."""
        self.providers: Dict[str, Provider] = {}
        self.tokens: Dict[str, Token] = {}

        # Insertion order only, never re-sorted
        self.waiting: List[Token] = []

    # --- Registry ---

    def add_provider(self, provider: Provider) -> None:
        self.providers[provider.id] = provider

    def register_token(self, token: Token) -> None:
        self.tokens[token.id] = token

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self.providers.get(provider_id)

    def get_token(self, token_id: str) -> Optional[Token]:
        return self.tokens.get(token_id)

    def get_slot(self, provider_id: str, slot_time: str) -> Optional[Slot]:
        provider = self.providers.get(provider_id)
        if provider is None:
            return None
        return provider.slots.get(normalize_slot_time(slot_time))

    def iter_slots(self):
        for provider in self.providers.values():
            yield from provider.slots.values()

    # --- Waiting queue ---

    def enqueue(self, token: Token) -> None:
        self.waiting.append(token)

    def discard_waiting(self, token_id: str) -> bool:
        """Drop a token from the queue. Returns True if it was queued."""
        for index, token in enumerate(self.waiting):
            if token.id == token_id:
                del self.waiting[index]
                return True
        return False

    def take_waiting(self) -> List[Token]:
        """Detach the current queue for a replay pass; the live queue starts empty."""
        pending, self.waiting = self.waiting, []
        return pending

    def restore_waiting(self, still_waiting: List[Token]) -> None:
        """
        Put unplaced tokens back ahead of anything bumped during the pass,
        keeping their original relative order.
        """
        self.waiting = list(still_waiting) + self.waiting

    # --- Reporting Methods ---

    def get_statistics(self) -> Dict[str, Any]:
        """Aggregate occupancy across every registered slot."""
        total_slots = 0
        occupied_slots = 0
        total_capacity = 0
        allocated_tokens = 0

        for slot in self.iter_slots():
            total_slots += 1
            total_capacity += slot.max_capacity
            allocated_tokens += len(slot.tokens)
            if slot.tokens:
                occupied_slots += 1

        # No slots registered: report 0% rather than dividing by zero
        utilization = (allocated_tokens / total_capacity) * 100 if total_capacity else 0.0

        return {
            "total_providers": len(self.providers),
            "total_slots": total_slots,
            "occupied_slots": occupied_slots,
            "total_capacity": total_capacity,
            "allocated_tokens": allocated_tokens,
            "waiting_queue": len(self.waiting),
            "utilization_rate": round(utilization, 2),
        }

    def clear(self) -> None:
        """Reset state (useful for testing or re-running a scenario)."""
        self.providers.clear()
        self.tokens.clear()
        self.waiting.clear()
