"""Termination status of a test case subprocess."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Exited:
    """The process terminated on its own with an exit code."""

    code: int

    @property
    def success(self) -> bool:
        return self.code == 0


@dataclass(frozen=True)
class Signaled:
    """The process was terminated by a signal."""

    signal: int


# A missing status (None) means the test case timed out.
type ProcessStatus = Exited | Signaled


def status_from_returncode(returncode: int) -> ProcessStatus:
    """Convert a subprocess returncode into a ProcessStatus.

    Negative return codes are how asyncio and subprocess report death by
    signal.
    """
    if returncode < 0:
        return Signaled(-returncode)
    return Exited(returncode)
