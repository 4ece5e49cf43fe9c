"""
Allocation engine package for the OPD Token Allocator.
"""

from .engine import TokenAllocationEngine
from models.errors import (
    AllocationError,
    ProviderNotFound,
    TokenNotFound,
    SlotNotFound,
    NoCapacity,
    InvalidSource,
    InvalidRequest
)

__all__ = [
    "TokenAllocationEngine",
    "AllocationError",
    "ProviderNotFound",
    "TokenNotFound",
    "SlotNotFound",
    "NoCapacity",
    "InvalidSource",
    "InvalidRequest",
]
