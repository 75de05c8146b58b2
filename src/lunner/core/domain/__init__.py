"""Domain models and enums."""

from lunner.core.domain.election import ClaimAction, judge_claim

__all__ = [
    "ClaimAction",
    "judge_claim",
]
