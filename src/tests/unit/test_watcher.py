"""Unit tests for RoleWatcher."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from lunner.control.hooks import HookDispatcher, Role
from lunner.control.watcher import RoleWatcher
from lunner.core.errors import HookSpawnError
from lunner.core.state import LeadershipState


@pytest.fixture
def dispatcher() -> MagicMock:
    dispatcher = MagicMock(spec=HookDispatcher)
    dispatcher.dispatch = AsyncMock()
    return dispatcher


class TestTick:
    """One dispatch per verdict flip."""

    @pytest.mark.asyncio
    async def test_no_change_no_dispatch(self, dispatcher: MagicMock) -> None:
        watcher = RoleWatcher(LeadershipState(), dispatcher)

        assert await watcher.tick() is None
        dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_each_flip_dispatches_once(self, dispatcher: MagicMock) -> None:
        state = LeadershipState()
        watcher = RoleWatcher(state, dispatcher)

        await state.set_leader(True)
        assert await watcher.tick() is Role.LEADER
        assert await watcher.tick() is None
        assert watcher.currently_leader is True

        await state.set_leader(False)
        assert await watcher.tick() is Role.STANDBY
        assert await watcher.tick() is None

        assert [c.args[0] for c in dispatcher.dispatch.await_args_list] == [
            Role.LEADER,
            Role.STANDBY,
        ]

    @pytest.mark.asyncio
    async def test_flip_and_back_between_ticks_is_invisible(self, dispatcher: MagicMock) -> None:
        state = LeadershipState()
        watcher = RoleWatcher(state, dispatcher)

        await state.set_leader(True)
        await state.set_leader(False)

        assert await watcher.tick() is None
        dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_spawn_failure_propagates_without_updating_role(
        self, dispatcher: MagicMock
    ) -> None:
        dispatcher.dispatch.side_effect = HookSpawnError("leader", "/usr/bin/promote", "ENOENT")
        state = LeadershipState()
        watcher = RoleWatcher(state, dispatcher)
        await state.set_leader(True)

        with pytest.raises(HookSpawnError):
            await watcher.tick()

        assert watcher.currently_leader is False


class TestRun:
    @pytest.mark.asyncio
    async def test_run_follows_state(self, dispatcher: MagicMock) -> None:
        state = LeadershipState()
        watcher = RoleWatcher(state, dispatcher, interval=0.01)
        task = asyncio.create_task(watcher.run())

        await state.set_leader(True)
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        dispatcher.dispatch.assert_awaited_once_with(Role.LEADER)
