"""
Result object returned by every mutating allocator operation.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .token import Token

ALTERNATIVE_SLOT_NOTE = "alternative slot used"


class AllocationOutcome(BaseModel):
    """
    Structured result of allocate / cancel / emergency insertion.
    'Queued' is a normal outcome, not an error: success=False, queued=True, error=None.
    """
    success: bool
    queued: bool = False
    slot_time: Optional[str] = None
    token: Optional[Token] = Field(default=None, description="Detached snapshot")
    message: str = ""
    note: Optional[str] = None

    # Populated only for rejected requests
    error: Optional[str] = Field(default=None, description="Error class name, e.g. 'ProviderNotFound'")
    error_value: Optional[str] = Field(default=None, description="The offending id or time")

    # Tokens placed by a queue replay this call triggered
    reallocated: List[Token] = Field(default_factory=list)

    @property
    def placed(self) -> bool:
        return self.success and self.slot_time is not None

    @classmethod
    def allocated(cls, token: Token, message: str, note: Optional[str] = None,
                  reallocated: Optional[List[Token]] = None) -> "AllocationOutcome":
        return cls(
            success=True,
            slot_time=token.slot_time,
            token=token.snapshot(),
            message=message,
            note=note,
            reallocated=reallocated or [],
        )

    @classmethod
    def waiting(cls, token: Token) -> "AllocationOutcome":
        return cls(
            success=False,
            queued=True,
            token=token.snapshot(),
            message="No slots available, added to waiting queue",
        )

    @classmethod
    def failed(cls, error: Exception) -> "AllocationOutcome":
        value = getattr(error, "value", None)
        return cls(
            success=False,
            message=str(error),
            error=type(error).__name__,
            error_value=None if value is None else str(value),
        )
