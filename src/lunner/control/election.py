"""Election engine - one serializable claim transaction per cycle.

Each cycle:
1. Open a SERIALIZABLE transaction, read the claim row, apply
   judge_claim() (claim / renew / takeover / standby), commit.
2. Re-read the claim row outside the transaction; the verdict is
   ``leader == node_id``. Any failure of this read means "not leader".
3. Write the verdict to LeadershipState.

Database errors never leave this module: they are logged and the next
tick is the retry. There is no backoff.
"""

import asyncio
import logging
import time
from datetime import timedelta

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from lunner.app.metrics import ELECTION_CYCLE_DURATION, ELECTION_CYCLES_TOTAL, IS_LEADER
from lunner.core.domain.election import ClaimAction, judge_claim
from lunner.core.interfaces.leader import ClaimStore
from lunner.core.logging_schema import Component, ErrorClass, LogEvent
from lunner.core.state import LeadershipState

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


def classify_error(exc: BaseException) -> ErrorClass:
    """Classify an election failure for the error_class log field."""
    if isinstance(exc, TimeoutError):
        return ErrorClass.TIMEOUT
    if isinstance(exc, (OSError, PoolTimeoutError)):
        return ErrorClass.TRANSIENT
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return ErrorClass.TRANSIENT
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _CONFLICT_SQLSTATES:
            return ErrorClass.TRANSIENT
        if isinstance(exc, (OperationalError, InterfaceError)):
            return ErrorClass.TRANSIENT
    return ErrorClass.PERMANENT


class LeaderElector:
    """Periodic claim/renew/takeover loop writing the leadership verdict.

    Recommended timing: leader_timeout >= 2 x poll_interval, otherwise a
    leader delayed by a single slow cycle can be taken over.
    """

    def __init__(
        self,
        store: ClaimStore,
        state: LeadershipState,
        node_id: str,
        leader_timeout: timedelta,
        poll_interval: float = 10.0,
        db_timeout: float = 5.0,
    ) -> None:
        """Initialize the election engine.

        Args:
            store: Coordination store adapter.
            state: Shared leadership cell (this engine is its only writer).
            node_id: Fleet-unique identity of this node.
            leader_timeout: Silence after which a foreign claim is stale.
            poll_interval: Seconds between cycle starts.
            db_timeout: Timeout for each of the transaction and the verdict read.
        """
        self._store = store
        self._state = state
        self._node_id = node_id
        self._leader_timeout = leader_timeout
        self._poll_interval = poll_interval
        self._db_timeout = db_timeout
        self._schema_ready = False
        self._was_leader = False

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    async def elect(self) -> ClaimAction:
        """Run the claim transaction once. Raises on any database failure."""
        if not self._schema_ready:
            await self._store.ensure_schema()
            self._schema_ready = True
            logger.info(
                "Claim table ready",
                extra={"event": LogEvent.SCHEMA_READY, "component": Component.ELECTION},
            )

        async with self._store.transaction() as tx:
            logger.debug("Checking leader")
            claim = await tx.read_claim()
            action = judge_claim(claim, self._node_id, self._leader_timeout)

            if action is ClaimAction.CLAIM:
                logger.info(
                    "No leader found - inserting self ('%s') as leader",
                    self._node_id,
                    extra={"event": LogEvent.CLAIM_INSERTED, "component": Component.ELECTION},
                )
                await tx.insert_claim(self._node_id)
            elif action is ClaimAction.RENEW:
                logger.debug(
                    "We are leader - renewing claim",
                    extra={"event": LogEvent.CLAIM_RENEWED, "component": Component.ELECTION},
                )
                await tx.renew_claim(self._node_id)
            elif action is ClaimAction.TAKEOVER and claim is not None:
                elapsed = claim.elapsed
                logger.warning(
                    "Leader '%s' has timed out - inserting self as leader",
                    claim.leader,
                    extra={
                        "event": LogEvent.LEADER_TIMED_OUT,
                        "component": Component.ELECTION,
                        "leader": claim.leader,
                        "elapsed_seconds": elapsed.total_seconds() if elapsed else None,
                    },
                )
                await tx.delete_claim()
                await tx.insert_claim(self._node_id)
            else:
                logger.debug(
                    "Leader is '%s'",
                    claim.leader if claim else None,
                    extra={"event": LogEvent.LEADER_OBSERVED, "component": Component.ELECTION},
                )

        return action

    async def read_verdict(self) -> bool:
        """Re-read the claim row. Any failure or missing row means False."""
        try:
            async with asyncio.timeout(self._db_timeout):
                claim = await self._store.read_claim()
        except Exception as e:
            logger.warning(
                "Selecting leader failed: %s",
                e,
                extra={
                    "event": LogEvent.VERDICT_READ_FAILED,
                    "component": Component.ELECTION,
                    "error_class": classify_error(e),
                },
            )
            return False
        return claim is not None and claim.leader == self._node_id

    async def tick(self) -> bool:
        """Execute one election cycle and publish the verdict."""
        started = time.monotonic()
        try:
            async with asyncio.timeout(self._db_timeout):
                action = await self.elect()
            ELECTION_CYCLES_TOTAL.labels(action=action.value).inc()
        except Exception as e:
            ELECTION_CYCLES_TOTAL.labels(action="error").inc()
            logger.warning(
                "Election cycle failed: %s",
                str(e) or type(e).__name__,
                extra={
                    "event": LogEvent.ELECTION_FAILED,
                    "component": Component.ELECTION,
                    "error_class": classify_error(e),
                    "error_type": type(e).__name__,
                },
            )

        verdict = await self.read_verdict()
        await self._state.set_leader(verdict)

        IS_LEADER.set(1 if verdict else 0)
        ELECTION_CYCLE_DURATION.observe(time.monotonic() - started)
        self._log_transition(verdict)
        return verdict

    def _log_transition(self, verdict: bool) -> None:
        if verdict and not self._was_leader:
            logger.info(
                "Acquired leadership (node=%s)",
                self._node_id,
                extra={"event": LogEvent.LEADERSHIP_ACQUIRED, "component": Component.ELECTION},
            )
        elif not verdict and self._was_leader:
            logger.warning(
                "Lost leadership (node=%s)",
                self._node_id,
                extra={"event": LogEvent.LEADERSHIP_LOST, "component": Component.ELECTION},
            )
        self._was_leader = verdict

    async def run(self) -> None:
        """Run cycles forever at a fixed interval."""
        logger.info(
            "Starting election loop (interval=%.1fs, timeout=%.1fs)",
            self._poll_interval,
            self._leader_timeout.total_seconds(),
            extra={"event": LogEvent.APP_STARTED, "component": Component.ELECTION},
        )
        while True:
            started = time.monotonic()
            await self.tick()
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self._poll_interval - elapsed))
