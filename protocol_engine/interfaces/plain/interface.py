"""Test interface for programs that only report through their exit code."""

from pathlib import Path

from protocol_engine.interfaces.base import (
    SingleCaseInterface,
    compute_infrastructure_result,
)
from protocol_engine.models.result import TestResult
from protocol_engine.models.status import Exited, ProcessStatus


class PlainInterface(SingleCaseInterface):
    """Exit code 0 means passed; anything else means failed."""

    name = "plain"

    def compute_result(
        self,
        status: ProcessStatus | None,
        control_dir: Path,
        stdout_path: Path,
        stderr_path: Path,
    ) -> TestResult:
        if not isinstance(status, Exited):
            return compute_infrastructure_result(status)

        if status.success:
            return TestResult.passed()
        return TestResult.failed(f"Returned non-success exit status {status.code}")
