"""Hook dispatcher - launch the role hook for a new role.

Fire-and-forget: dispatch() returns as soon as the process exists. A
detached task per process awaits its exit so the child is reaped. The
exit status is not inspected.

Failing to start the process is fatal (HookSpawnError): a node that
cannot react to a role change must not keep running.
"""

import asyncio
import logging
import shutil
from enum import StrEnum

from lunner.app.config import HookConfig, HooksConfig
from lunner.app.metrics import HOOK_LAUNCHES_TOTAL
from lunner.core.errors import ConfigError, HookSpawnError
from lunner.core.logging_schema import Component, LogEvent

logger = logging.getLogger(__name__)


class Role(StrEnum):
    """Node role; selects the hook to run."""

    LEADER = "leader"
    STANDBY = "standby"

    @classmethod
    def from_verdict(cls, is_leader: bool) -> "Role":
        return cls.LEADER if is_leader else cls.STANDBY


class HookDispatcher:
    """Launches become-leader / become-standby commands."""

    def __init__(self, hooks: HooksConfig) -> None:
        self._hooks: dict[Role, HookConfig] = {
            Role.LEADER: hooks.become_leader,
            Role.STANDBY: hooks.become_standby,
        }
        self._reapers: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of launched hooks not yet reaped."""
        return len(self._reapers)

    def hook_for(self, role: Role) -> HookConfig:
        return self._hooks[role]

    def verify(self) -> None:
        """Check that every hook command resolves to an executable.

        Raises:
            ConfigError: A hook command is not found or not executable.
        """
        for role, hook in self._hooks.items():
            if shutil.which(hook.cmd) is None:
                raise ConfigError(
                    f"become-{role} hook command not found or not executable: {hook.cmd}"
                )

    async def dispatch(self, role: Role) -> asyncio.subprocess.Process:
        """Start the hook for role without waiting for it to finish.

        Raises:
            HookSpawnError: The process could not be started.
        """
        hook = self._hooks[role]
        logger.info(
            "Executing become-%s hook",
            role,
            extra={"event": LogEvent.HOOK_STARTED, "component": Component.HOOKS, "cmd": hook.cmd},
        )
        try:
            proc = await asyncio.create_subprocess_exec(hook.cmd, *hook.args)
        except OSError as e:
            logger.error(
                "Couldn't execute become-%s hook: %s",
                role,
                e,
                extra={
                    "event": LogEvent.HOOK_SPAWN_FAILED,
                    "component": Component.HOOKS,
                    "cmd": hook.cmd,
                },
            )
            raise HookSpawnError(role, hook.cmd, str(e)) from e

        HOOK_LAUNCHES_TOTAL.labels(role=role.value).inc()
        task = asyncio.create_task(self._reap(role, proc), name=f"lunner-reap-{proc.pid}")
        self._reapers.add(task)
        task.add_done_callback(self._reapers.discard)
        return proc

    async def _reap(self, role: Role, proc: asyncio.subprocess.Process) -> None:
        returncode = await proc.wait()
        logger.debug(
            "become-%s hook exited (pid=%s, returncode=%s)",
            role,
            proc.pid,
            returncode,
            extra={
                "event": LogEvent.HOOK_EXITED,
                "component": Component.HOOKS,
                "hook_pid": proc.pid,
                "returncode": returncode,
            },
        )

    async def wait_reaped(self) -> None:
        """Wait until every launched hook has exited."""
        if self._reapers:
            await asyncio.gather(*self._reapers, return_exceptions=True)
