"""Tests for the plain test interface."""

from pathlib import Path

import pytest

from protocol_engine.interfaces.base import (
    UnsupportedTestCaseError,
    compute_infrastructure_result,
)
from protocol_engine.interfaces.plain import PlainInterface
from protocol_engine.models.result import TestResult
from protocol_engine.models.status import Exited, ProcessStatus, Signaled
from protocol_engine.testing.factories import TestProgramFactory


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (Exited(0), TestResult.passed()),
        (Exited(3), TestResult.failed("Returned non-success exit status 3")),
        (Signaled(15), TestResult.broken("Received signal 15")),
        (None, TestResult.broken("Test case timed out")),
    ],
)
def test_compute_result(
    tmp_path: Path, status: ProcessStatus | None, expected: TestResult
) -> None:
    """Only the termination status matters."""
    stdout_path = tmp_path / "stdout.txt"
    stdout_path.write_text("not ok 1\nwhatever\n")

    result = PlainInterface().compute_result(
        status, tmp_path, stdout_path, tmp_path / "stderr.txt"
    )

    assert result == expected


def test_rejects_other_test_cases(tmp_path: Path) -> None:
    """Plain programs only have a main test case."""
    with pytest.raises(UnsupportedTestCaseError):
        PlainInterface().build_invocation(
            TestProgramFactory.build(interface="plain"), "foo", {}, tmp_path
        )


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (None, TestResult.broken("Test case timed out")),
        (Signaled(9), TestResult.broken("Received signal 9")),
    ],
)
def test_compute_infrastructure_result(
    status: Signaled | None, expected: TestResult
) -> None:
    """Timeouts and signals are broken whatever the protocol."""
    assert compute_infrastructure_result(status) == expected
