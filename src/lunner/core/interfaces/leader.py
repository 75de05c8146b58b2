"""Claim store interface for database-arbitrated leader election."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class ClaimRow:
    """The claim row plus the store's clock, read in one statement.

    Attributes:
        leader: Node identity holding leadership.
        since: Start of the current leadership term (store clock).
        heartbeat: Last renewal by the leader (store clock). Falls back to
            ``since`` for rows written before heartbeats existed.
        now: Store clock at the time of the read.
    """

    leader: str
    since: datetime | None
    heartbeat: datetime | None
    now: datetime | None

    @property
    def elapsed(self) -> timedelta | None:
        """Time since the leader last renewed, or None if not computable."""
        last_seen = self.heartbeat if self.heartbeat is not None else self.since
        if last_seen is None or self.now is None:
            return None
        try:
            return self.now - last_seen
        except TypeError:
            # naive vs aware timestamps
            return None


class ClaimTransaction(ABC):
    """Operations available inside one serializable transaction."""

    @abstractmethod
    async def read_claim(self) -> ClaimRow | None:
        """Return the claim row, or None if no leader is claimed."""
        ...

    @abstractmethod
    async def insert_claim(self, node_id: str) -> None:
        """Insert a claim row for node_id with since = heartbeat = now."""
        ...

    @abstractmethod
    async def renew_claim(self, node_id: str) -> None:
        """Refresh the heartbeat of node_id's own claim. Must not touch since."""
        ...

    @abstractmethod
    async def delete_claim(self) -> None:
        """Delete every claim row."""
        ...


class ClaimStore(ABC):
    """Abstract base class for the coordination store.

    Implementations must handle:
    - Isolation: transaction() runs at SERIALIZABLE (or an equivalent
      that aborts one of two conflicting writers)
    - Parameter binding: node identities are never interpolated into SQL
    - Clock: every timestamp comes from the store, never the node
    """

    @abstractmethod
    async def ensure_schema(self) -> None:
        """Create the claim table if it does not exist (idempotent)."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[ClaimTransaction]:
        """Open a serializable transaction.

        Commits on normal exit, rolls back if the block raises. A commit
        that loses a serialization conflict raises.
        """
        ...

    @abstractmethod
    async def read_claim(self) -> ClaimRow | None:
        """Read the claim row outside any election transaction."""
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        return None
