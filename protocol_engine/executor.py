"""Spawning of test case subprocesses with captured output and a timeout."""

import asyncio
import contextlib
import logging
import os
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from protocol_engine.interfaces.base import Invocation
from protocol_engine.models.config import UnprivilegedUser
from protocol_engine.models.status import ProcessStatus, status_from_returncode

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ProcessExecutor:
    """Runs invocations in their own process group.

    The subprocess inherits no stdin, and its stdout and stderr go straight
    to files so that output survives even if the engine is interrupted.
    """

    unprivileged_user: UnprivilegedUser | None = None

    async def execute(
        self,
        invocation: Invocation,
        *,
        stdout_path: Path,
        stderr_path: Path,
        timeout: float,
        cwd: Path | None = None,
    ) -> ProcessStatus | None:
        """Run invocation to completion.

        Args:
            invocation: What to run
            stdout_path: File receiving the stdout of the process
            stderr_path: File receiving the stderr of the process
            timeout: Seconds before the process group is killed
            cwd: Working directory of the process

        Returns:
            The termination status, or None if the process timed out

        Raises:
            OSError: If the process could not be spawned at all

        """
        with stdout_path.open("wb") as stdout, stderr_path.open("wb") as stderr:
            process = await asyncio.create_subprocess_exec(
                *invocation.argv,
                env=dict(invocation.env),
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                start_new_session=True,
                **self._credentials(),
            )
            log.debug("Spawned %s as pid %d", invocation.executable, process.pid)

            try:
                returncode = await asyncio.wait_for(process.wait(), timeout)
            except TimeoutError:
                log.info(
                    "Killing %s (pid %d) after %.1fs timeout",
                    invocation.executable,
                    process.pid,
                    timeout,
                )
                self._kill_group(process.pid)
                await process.wait()
                return None
            finally:
                if process.returncode is None:
                    # Cancelled while waiting: leave nothing running behind.
                    self._kill_group(process.pid)
                    await asyncio.shield(process.wait())

        # The process group leader is gone, but children may still hold
        # the output files; kill them so the captured output is final.
        self._kill_group(process.pid)
        return status_from_returncode(returncode)

    def grant_access(self, *paths: Path) -> None:
        """Hand paths over to the user test cases run as.

        Does nothing unless the engine runs as root with an unprivileged
        user configured, which is also when processes drop privileges.
        """
        user = self._target_user()
        if user is None:
            return
        for path in paths:
            os.chown(path, user.uid, user.gid)
            log.debug("Handed %s over to %s", path, user)

    def _target_user(self) -> UnprivilegedUser | None:
        if self.unprivileged_user is None or os.geteuid() != 0:
            return None
        return self.unprivileged_user

    def _credentials(self) -> dict[str, Any]:
        user = self._target_user()
        if user is None:
            return {}
        return {"user": user.uid, "group": user.gid, "extra_groups": []}

    @staticmethod
    def _kill_group(pgid: int) -> None:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(pgid, signal.SIGKILL)
