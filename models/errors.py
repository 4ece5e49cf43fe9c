"""
Error taxonomy for the OPD Token Allocator.

Internal helpers raise these; public engine operations catch them at the
boundary and report them as failed AllocationOutcome objects.
"""

from typing import List, Optional


class AllocationError(Exception):
    """Base class. `value` is the offending id or time."""

    def __init__(self, value, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"{type(self).__name__}: {value}")


class ProviderNotFound(AllocationError):
    def __init__(self, provider_id: str):
        super().__init__(provider_id, "Doctor not found")


class TokenNotFound(AllocationError):
    def __init__(self, token_id: str):
        super().__init__(token_id, "Token not found")


class SlotNotFound(AllocationError):
    """Requested time is outside the provider's working hours."""

    def __init__(self, provider_id: str, slot_time: str):
        self.provider_id = provider_id
        super().__init__(slot_time, f"No slot at {slot_time} for doctor {provider_id}")


class NoCapacity(AllocationError):
    """Slot is full and holds nothing of strictly lower priority."""

    def __init__(self, provider_id: str, slot_time: str):
        self.provider_id = provider_id
        super().__init__(slot_time, f"Slot {slot_time} for doctor {provider_id} is full")


class InvalidSource(AllocationError):
    def __init__(self, tag, valid: Optional[List[str]] = None):
        self.valid = valid or []
        message = f"Invalid source {tag!r}"
        if self.valid:
            message += f". Valid sources: {', '.join(self.valid)}"
        super().__init__(tag, message)


class InvalidRequest(AllocationError):
    """Malformed request field (empty patient id, unknown status, ...)."""

    def __init__(self, value, reason: str):
        super().__init__(value, f"Invalid request: {reason}")
