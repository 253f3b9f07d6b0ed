"""Test interface for programs that report results using TAP."""

import logging
from pathlib import Path

from protocol_engine.interfaces.base import (
    SingleCaseInterface,
    compute_infrastructure_result,
)
from protocol_engine.interfaces.tap.parser import (
    AllSkippedPlan,
    TapParseError,
    TapSummary,
    parse_tap_output,
)
from protocol_engine.models.result import TestResult
from protocol_engine.models.status import Exited, ProcessStatus

log = logging.getLogger(__name__)


def tap_to_result(summary: TapSummary, status: Exited) -> TestResult:
    """Compute the result of a TAP test program that exited on its own.

    Timeouts and unparseable output are handled by the caller.
    """
    if summary.bailed_out:
        return TestResult.failed("Bailed out")

    if isinstance(summary.plan, AllSkippedPlan):
        return TestResult.skipped(summary.plan.reason)

    if summary.not_ok_count == 0:
        if status.success:
            return TestResult.passed()
        return TestResult.broken(
            "Dubious test program: reported all tests as passed "
            f"but returned exit code {status.code}"
        )

    total = summary.ok_count + summary.not_ok_count
    return TestResult.failed(f"{summary.not_ok_count} of {total} tests failed")


class TapInterface(SingleCaseInterface):
    """Programs that print a TAP stream to stdout as a single 'main' case."""

    name = "tap"

    def compute_result(
        self,
        status: ProcessStatus | None,
        control_dir: Path,
        stdout_path: Path,
        stderr_path: Path,
    ) -> TestResult:
        """Parse the TAP stream on stdout and reconcile it with the exit code."""
        if not isinstance(status, Exited):
            return compute_infrastructure_result(status)

        match parse_tap_output(stdout_path):
            case TapParseError() as error:
                log.debug("Invalid TAP output in %s: %s", stdout_path, error)
                return TestResult.broken(
                    f"TAP test program yielded invalid data: {error}"
                )
            case TapSummary() as summary:
                return tap_to_result(summary, status)
