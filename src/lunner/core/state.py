"""Shared leadership state between the election loop and the watcher loop."""

import asyncio


class LeadershipState:
    """Single boolean cell guarded by an asyncio.Lock.

    Written only by the election engine, read by the watcher. Readers see
    the most recently written value; they may lag one cycle behind.
    """

    def __init__(self, leader: bool = False) -> None:
        self._leader = leader
        self._lock = asyncio.Lock()

    async def is_leader(self) -> bool:
        async with self._lock:
            return self._leader

    async def set_leader(self, leader: bool) -> bool:
        """Store the verdict. Returns True if the value changed."""
        async with self._lock:
            changed = leader != self._leader
            self._leader = leader
            return changed
