"""Role watcher - dispatch a hook whenever the leadership verdict flips."""

import asyncio
import logging

from lunner.control.hooks import HookDispatcher, Role
from lunner.core.logging_schema import Component, LogEvent
from lunner.core.state import LeadershipState

logger = logging.getLogger(__name__)


class RoleWatcher:
    """Compares the shared verdict with the last observed one each tick.

    The initial observed value is False: the node has just run its
    become-standby hook at startup.
    """

    def __init__(
        self,
        state: LeadershipState,
        dispatcher: HookDispatcher,
        interval: float = 5.0,
    ) -> None:
        self._state = state
        self._dispatcher = dispatcher
        self._interval = interval
        self._currently_leader = False

    @property
    def currently_leader(self) -> bool:
        return self._currently_leader

    async def tick(self) -> Role | None:
        """Dispatch the hook for the new role if the verdict changed.

        Returns:
            The role dispatched, or None if nothing changed.

        Raises:
            HookSpawnError: The hook could not be started.
        """
        is_leader = await self._state.is_leader()
        logger.debug("Testing if state has changed")
        if is_leader == self._currently_leader:
            return None

        role = Role.from_verdict(is_leader)
        logger.info(
            "Role changed to %s",
            role,
            extra={"event": LogEvent.ROLE_CHANGED, "component": Component.WATCHER},
        )
        await self._dispatcher.dispatch(role)
        self._currently_leader = is_leader
        return role

    async def run(self) -> None:
        """Watch forever. A hook spawn failure propagates out."""
        while True:
            await self.tick()
            await asyncio.sleep(self._interval)
