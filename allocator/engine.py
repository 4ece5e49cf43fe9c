"""
The OPD Token Allocation Engine.

This module implements the core placement logic.
It combines four strategies:
1. Direct Placement - the requested slot, if it has room.
2. Preemption (Bumping) - evict the lowest strictly-lower-priority occupant.
3. Alternative Slots - probe nearby hours of the same doctor.
4. Waiting Queue Replay - a single FIFO pass re-seating queued tokens.

The engine is single-threaded. Callers sharing one instance across threads
must serialize every call.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from models import (
    AllocationOutcome,
    ALTERNATIVE_SLOT_NOTE,
    Provider,
    Slot,
    SLOT_CAPACITY,
    SOURCE_PRIORITIES,
    Token,
    TokenSource,
    TokenStatus,
    format_slot_time,
    normalize_slot_time,
    parse_slot_hour,
    priority_for,
    resolve_source,
    AllocationError,
    InvalidRequest,
    NoCapacity,
    ProviderNotFound,
    SlotNotFound,
    TokenNotFound,
)
from .constraints import can_accept, find_preemption_victim
from .state import AllocatorState

logger = logging.getLogger(__name__)


class TokenAllocationEngine:
    """
    Main allocation engine and sole mutator of allocator state.
    """

    # Probe order for nearby slots. Two hours earlier is tried before one hour
    # earlier; first match wins.
    ALTERNATIVE_OFFSETS = (-2, -1, 1, 2)

    def __init__(self):
        self._state = AllocatorState()

    # --- Setup ---

    def register_provider(self, provider: Provider) -> None:
        """
        Store a private copy of the provider with one slot per working hour.
        The caller's object is left untouched. Re-registering an id replaces
        the previous provider.
        """
        provider = provider.model_copy(update={"slots": provider.build_slots(SLOT_CAPACITY)})
        if self._state.get_provider(provider.id) is not None:
            logger.warning(f"Doctor {provider.id} re-registered, previous slots discarded")
        self._state.add_provider(provider)
        logger.info(f"Registered {provider.name} ({provider.specialization}) with {len(provider.slots)} slots")

    # --- Core Operations ---

    def allocate(self, patient_id: str, provider_id: str, preferred_time: str, source) -> AllocationOutcome:
        """
        Request a token: preferred slot, then an alternative slot, then the waiting queue.
        """
        token_source = resolve_source(source)
        preferred_time = normalize_slot_time(preferred_time)
        try:
            self._get_provider(provider_id)
            token = self._new_token(patient_id, provider_id, preferred_time, token_source)
        except AllocationError as e:
            logger.warning(f"Allocation rejected for patient {patient_id!r}: {e}")
            return AllocationOutcome.failed(e)

        # Attempt 1: Preferred slot (may bump)
        if self.try_place(token, preferred_time):
            self._state.register_token(token)
            logger.info(f"Token {token.id} ({token.source.value}) -> {provider_id}@{preferred_time}")
            return AllocationOutcome.allocated(token, "Token allocated successfully")

        # Attempt 2: Nearby slot
        alternative = self.find_alternative(provider_id, preferred_time, token.priority)
        if alternative is not None:
            token.slot_time = alternative
            if self.try_place(token, alternative):
                self._state.register_token(token)
                logger.info(f"Token {token.id} moved from {preferred_time} to alternative {alternative}")
                return AllocationOutcome.allocated(
                    token,
                    f"Token allocated to alternative slot: {alternative}",
                    note=ALTERNATIVE_SLOT_NOTE,
                )

        # Attempt 3: Wait
        self._state.enqueue(token)
        logger.info(f"Token {token.id} queued for {provider_id} (queue length {len(self._state.waiting)})")
        return AllocationOutcome.waiting(token)

    def try_place(self, token: Token, slot_time: str) -> bool:
        """
        Put the token into the slot at `slot_time`, bumping one lower-priority
        occupant to the waiting queue if the slot is full.
        """
        slot = self._state.get_slot(token.provider_id, slot_time)
        if slot is None:
            return False

        if slot.available_capacity > 0:
            if slot.add_token(token):
                token.slot_time = slot.start_time
                return True
            return False

        victim = find_preemption_victim(slot.tokens, token.priority)
        if victim is None:
            return False

        slot.remove_token(victim.id)
        self._state.enqueue(victim)
        slot.add_token(token)
        token.slot_time = slot.start_time
        logger.info(
            f"Bumped token {victim.id} (P{victim.priority}) from {slot.provider_id}@{slot.start_time} "
            f"for token {token.id} (P{token.priority})"
        )
        return True

    def find_alternative(self, provider_id: str, preferred_time, priority: int) -> Optional[str]:
        """
        First nearby slot (in ALTERNATIVE_OFFSETS order) that has room or a bumpable occupant.
        """
        provider = self._state.get_provider(provider_id)
        preferred_hour = parse_slot_hour(preferred_time)
        if provider is None or preferred_hour is None:
            return None

        for offset in self.ALTERNATIVE_OFFSETS:
            candidate = format_slot_time(preferred_hour + offset)
            slot = provider.slots.get(candidate)
            if slot is not None and can_accept(slot, priority):
                return candidate
        return None

    def cancel(self, token_id: str) -> AllocationOutcome:
        """
        Cancel a token, free its slot and replay the waiting queue.
        The token stays in the registry with status 'cancelled'.
        """
        try:
            token = self._get_token(token_id)
        except AllocationError as e:
            logger.warning(f"Cancellation rejected: {e}")
            return AllocationOutcome.failed(e)

        slot = self._state.get_slot(token.provider_id, token.slot_time)
        if slot is not None:
            slot.remove_token(token.id)
        # A bumped token may be sitting in the queue instead
        self._state.discard_waiting(token.id)

        token.status = TokenStatus.CANCELLED
        logger.info(f"Cancelled token {token.id} ({token.provider_id}@{token.slot_time})")

        reallocated = self.replay_queue()
        return AllocationOutcome(
            success=True,
            token=token.snapshot(),
            message="Token cancelled successfully",
            reallocated=reallocated,
        )

    def insert_emergency(self, patient_id: str, provider_id: str, urgent_time: str) -> AllocationOutcome:
        """
        Place an emergency token at exactly `urgent_time`, bumping if needed.
        No alternative-slot search; no overflow capacity.
        """
        urgent_time = normalize_slot_time(urgent_time)
        try:
            self._get_provider(provider_id)
            if self._state.get_slot(provider_id, urgent_time) is None:
                raise SlotNotFound(provider_id, urgent_time)

            token = self._new_token(patient_id, provider_id, urgent_time, TokenSource.EMERGENCY)
            if not self.try_place(token, urgent_time):
                raise NoCapacity(provider_id, urgent_time)
        except AllocationError as e:
            logger.warning(f"Emergency insertion failed for patient {patient_id!r}: {e}")
            return AllocationOutcome.failed(e)

        self._state.register_token(token)
        logger.info(f"Emergency token {token.id} -> {provider_id}@{urgent_time}")

        # Resettle anything that was bumped
        reallocated = self.replay_queue()
        return AllocationOutcome.allocated(
            token, "Emergency token allocated successfully", reallocated=reallocated
        )

    def replay_queue(self) -> List[Token]:
        """
        One left-to-right pass over the waiting queue.

        Each token goes to the first of its doctor's slots (chronological) that
        has room or a bumpable occupant. Tokens bumped during this pass are not
        reconsidered until the next call, and are left out of the returned list
        even if they were seated earlier in the same pass.
        """
        pending = self._state.take_waiting()
        if not pending:
            return []

        seated: List[Token] = []
        still_waiting: List[Token] = []

        for token in pending:
            slot_time = self._first_eligible_slot(token.provider_id, token.priority)
            if slot_time is not None:
                token.slot_time = slot_time
                if self.try_place(token, slot_time):
                    self._state.register_token(token)
                    seated.append(token)
                    continue
            still_waiting.append(token)

        self._state.restore_waiting(still_waiting)

        requeued = {t.id for t in self._state.waiting}
        placed = [t.snapshot() for t in seated if t.id not in requeued]
        logger.info(
            f"Queue replay: {len(placed)} reallocated, {len(self._state.waiting)} still waiting"
        )
        return placed

    def update_status(self, token_id: str, status: TokenStatus) -> AllocationOutcome:
        """
        Record confirmed / completed / no-show. Slot occupancy is untouched;
        cancellation goes through cancel().
        """
        try:
            token = self._get_token(token_id)
            status = self._parse_status(status)
        except AllocationError as e:
            logger.warning(f"Status update rejected for token {token_id!r}: {e}")
            return AllocationOutcome.failed(e)

        if status == TokenStatus.CANCELLED:
            return self.cancel(token_id)
        if token.status == TokenStatus.CANCELLED:
            return AllocationOutcome(
                success=False,
                token=token.snapshot(),
                message=f"Token {token_id} is cancelled",
                error="TokenCancelled",
                error_value=token_id,
            )

        token.status = status
        logger.info(f"Token {token.id} marked {status.value}")
        return AllocationOutcome(
            success=True,
            slot_time=token.slot_time,
            token=token.snapshot(),
            message=f"Token marked {status.value}",
        )

    def reset(self) -> None:
        self._state.clear()

    # --- Read Views ---

    def get_token(self, token_id: str) -> Optional[Token]:
        token = self._state.get_token(token_id)
        return token.snapshot() if token else None

    def list_providers(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": p.id,
                "name": p.name,
                "specialization": p.specialization,
                "working_hours": p.working_hours,
            }
            for p in self._state.providers.values()
        ]

    def provider_schedule(self, provider_id: str) -> Optional[Dict[str, Any]]:
        """
        Per-slot occupancy for one doctor, slots by start time, occupants by
        descending priority (display order only).
        """
        provider = self._state.get_provider(provider_id)
        if provider is None:
            return None

        schedule = []
        for slot in sorted(provider.slots.values(), key=lambda s: s.hour):
            schedule.append(self._slot_view(slot))

        return {
            "doctor": {
                "id": provider.id,
                "name": provider.name,
                "specialization": provider.specialization,
            },
            "schedule": schedule,
        }

    def system_stats(self) -> Dict[str, Any]:
        return self._state.get_statistics()

    def waiting_queue(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": t.id,
                "patient_id": t.patient_id,
                "provider_id": t.provider_id,
                "preferred_time": t.slot_time,
                "source": t.source.value,
                "priority": t.priority,
                "created_at": t.created_at.isoformat(),
            }
            for t in self._state.waiting
        ]

    @staticmethod
    def token_sources() -> Dict[str, int]:
        return {source.value: priority for source, priority in SOURCE_PRIORITIES.items()}

    # --- Helpers ---

    @staticmethod
    def _new_token(patient_id, provider_id, slot_time: str, source: TokenSource) -> Token:
        try:
            return Token(
                patient_id=patient_id,
                provider_id=provider_id,
                slot_time=slot_time,
                source=source,
                priority=priority_for(source),
            )
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise InvalidRequest(error.get("input"), f"{field}: {error['msg']}") from e

    @staticmethod
    def _parse_status(status) -> TokenStatus:
        try:
            return TokenStatus(status)
        except ValueError:
            raise InvalidRequest(status, f"unknown status {status!r}") from None

    def _get_provider(self, provider_id: str) -> Provider:
        provider = self._state.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFound(provider_id)
        return provider

    def _get_token(self, token_id: str) -> Token:
        token = self._state.get_token(token_id)
        if token is None:
            raise TokenNotFound(token_id)
        return token

    def _first_eligible_slot(self, provider_id: str, priority: int) -> Optional[str]:
        provider = self._state.get_provider(provider_id)
        if provider is None:
            return None
        for slot in provider.slots.values():
            if can_accept(slot, priority):
                return slot.start_time
        return None

    @staticmethod
    def _slot_view(slot: Slot) -> Dict[str, Any]:
        occupants = sorted(slot.tokens, key=lambda t: t.priority, reverse=True)
        return {
            "time": f"{slot.start_time}-{slot.end_time}",
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "capacity": slot.max_capacity,
            "allocated": len(slot.tokens),
            "available": slot.available_capacity,
            "tokens": [
                {
                    "id": t.id,
                    "patient_id": t.patient_id,
                    "source": t.source.value,
                    "priority": t.priority,
                    "status": t.status.value,
                }
                for t in occupants
            ],
        }
