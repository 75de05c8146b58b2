"""Node orchestration - wire the election loop and the role watcher.

Startup order:
1. Verify both hook executables (ConfigError if missing)
2. Run the become-standby hook once, before any election cycle
3. Run the election loop and the watcher loop concurrently, forever

There is no in-band shutdown: the process runs until it is killed. A
hook spawn failure ends run() with HookSpawnError.
"""

import asyncio
import logging

from lunner.app.config import Settings
from lunner.app.metrics import start_metrics_server
from lunner.control.election import LeaderElector
from lunner.control.hooks import HookDispatcher, Role
from lunner.control.watcher import RoleWatcher
from lunner.core.interfaces.leader import ClaimStore
from lunner.core.logging_schema import Component, LogEvent
from lunner.core.state import LeadershipState
from lunner.infra.pg_leader import SQLAlchemyClaimStore
from lunner.infra.postgresql import create_election_engine

logger = logging.getLogger(__name__)


class Node:
    """One fleet member: election engine + watcher + hook dispatcher."""

    def __init__(
        self,
        settings: Settings,
        store: ClaimStore,
        dispatcher: HookDispatcher | None = None,
    ) -> None:
        self._settings = settings
        self.state = LeadershipState()
        self.dispatcher = dispatcher or HookDispatcher(settings.hooks)
        self.elector = LeaderElector(
            store,
            self.state,
            node_id=settings.id,
            leader_timeout=settings.leader_timeout,
            poll_interval=settings.election.poll_interval_seconds,
            db_timeout=settings.postgres.timeout_seconds,
        )
        self.watcher = RoleWatcher(
            self.state,
            self.dispatcher,
            interval=settings.election.watch_interval_seconds,
        )

    async def startup(self) -> None:
        """Verify hooks and put the node into a known standby state."""
        for warning in self._settings.timing_warnings():
            logger.warning(warning, extra={"event": LogEvent.CONFIG_WARNING})

        self.dispatcher.verify()

        logger.info(
            "Starting node '%s'",
            self._settings.id,
            extra={"event": LogEvent.APP_STARTED, "component": Component.WATCHER},
        )
        await self.dispatcher.dispatch(Role.STANDBY)

    async def run(self) -> None:
        await self.startup()

        tasks = {
            asyncio.create_task(self.elector.run(), name="lunner-election"),
            asyncio.create_task(self.watcher.run(), name="lunner-watcher"),
        }
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


async def run_node(settings: Settings) -> None:
    """Build the PostgreSQL-backed node and run it until killed."""
    start_metrics_server(settings.metrics)

    engine = create_election_engine(settings.postgres)
    store = SQLAlchemyClaimStore(engine, settings.postgres.table)
    node = Node(settings, store)
    try:
        await node.run()
    finally:
        logger.info("Stopping node", extra={"event": LogEvent.APP_STOPPED})
        await store.close()
