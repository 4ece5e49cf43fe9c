"""
Token data models for the OPD Token Allocator.

This module defines the 'Demand' side of the allocator:
1. Token sources and the fixed priority each one carries.
2. Token lifecycle statuses.
3. The Token itself (one allocation request / assignment).
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidSource

logger = logging.getLogger(__name__)


class TokenSource(str, Enum):
    """Channels a token request can arrive through."""
    EMERGENCY = "emergency"
    PRIORITY = "priority"
    FOLLOWUP = "followup"
    ONLINE = "online"
    WALKIN = "walkin"


# Higher number = higher priority. Static configuration, never recomputed.
SOURCE_PRIORITIES: Dict[TokenSource, int] = {
    TokenSource.EMERGENCY: 10,
    TokenSource.PRIORITY: 8,
    TokenSource.FOLLOWUP: 6,
    TokenSource.ONLINE: 4,
    TokenSource.WALKIN: 2,
}

DEFAULT_SOURCE = TokenSource.WALKIN


class TokenStatus(str, Enum):
    """Lifecycle state of a token."""
    ALLOCATED = "allocated"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"


def resolve_source(tag: Optional[str], strict: bool = False) -> TokenSource:
    """
    Map a raw source tag onto the closed set of sources.

    Unknown tags fall back to DEFAULT_SOURCE (walk-in). With strict=True an
    unknown tag raises InvalidSource instead, for callers that validate input.
    """
    if isinstance(tag, TokenSource):
        return tag
    try:
        return TokenSource(str(tag).strip().lower())
    except ValueError:
        if strict:
            raise InvalidSource(tag, valid=[s.value for s in TokenSource]) from None
        logger.warning(f"Unknown token source {tag!r}, defaulting to '{DEFAULT_SOURCE.value}'")
        return DEFAULT_SOURCE


def priority_for(source: TokenSource) -> int:
    """Priority of a resolved source (total over TokenSource)."""
    return SOURCE_PRIORITIES[source]


class Token(BaseModel):
    """
    A single allocation request.
    Identity and priority are fixed at creation; only location and status move.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    patient_id: str = Field(min_length=1, frozen=True)
    provider_id: str = Field(min_length=1, frozen=True)

    # Mutable: the engine moves tokens between slots
    slot_time: str = Field(description="Slot the token is (or was last) assigned to, 'HH:00'")

    source: TokenSource = Field(frozen=True)
    priority: int = Field(ge=0, frozen=True)
    status: TokenStatus = Field(default=TokenStatus.ALLOCATED)
    created_at: datetime = Field(default_factory=datetime.now, frozen=True)

    @property
    def is_active(self) -> bool:
        return self.status != TokenStatus.CANCELLED

    def snapshot(self) -> "Token":
        """Detached copy safe to hand to callers."""
        return self.model_copy()

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "5f0c6a1e-7d1b-4d8e-9a55-2f4b1c9e0a11",
            "patient_id": "P001",
            "provider_id": "DOC001",
            "slot_time": "09:00",
            "source": "online",
            "priority": 4,
            "status": "allocated",
        }
    })
