"""Core interfaces for the election engine."""

from lunner.core.interfaces.leader import ClaimRow, ClaimStore, ClaimTransaction

__all__ = [
    "ClaimRow",
    "ClaimStore",
    "ClaimTransaction",
]
