"""Claim judgement: what one election cycle should write.

Pure function over the observed claim row. No I/O; the election engine
executes the returned action inside its serializable transaction.
"""

from datetime import timedelta
from enum import StrEnum

from lunner.core.interfaces.leader import ClaimRow


class ClaimAction(StrEnum):
    """Write performed by one election cycle."""

    CLAIM = "claim"  # No row: insert self
    RENEW = "renew"  # Own row: refresh heartbeat
    TAKEOVER = "takeover"  # Foreign row past timeout: delete + insert self
    STANDBY = "standby"  # Foreign live row: no write


def judge_claim(
    claim: ClaimRow | None,
    node_id: str,
    leader_timeout: timedelta,
) -> ClaimAction:
    """Decide the action for this cycle.

    Priority order:
    1. no claim row -> CLAIM
    2. claim held by node_id -> RENEW
    3. foreign claim silent for strictly more than leader_timeout -> TAKEOVER
    4. otherwise -> STANDBY

    An elapsed time that cannot be computed, or is negative because the
    store clock went backwards, never triggers a takeover.

    Args:
        claim: Row read inside the transaction, or None
        node_id: Identity of this node
        leader_timeout: Silence after which a foreign claim is stale

    Returns:
        ClaimAction to execute before commit
    """
    if claim is None:
        return ClaimAction.CLAIM

    if claim.leader == node_id:
        return ClaimAction.RENEW

    elapsed = claim.elapsed
    if elapsed is None or elapsed < timedelta(0):
        return ClaimAction.STANDBY

    if elapsed > leader_timeout:
        return ClaimAction.TAKEOVER

    return ClaimAction.STANDBY
