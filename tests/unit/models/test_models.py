"""Tests for result, status and program models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from protocol_engine.models.program import TestProgram
from protocol_engine.models.result import TestResult
from protocol_engine.models.status import Exited, Signaled, status_from_returncode


class TestTestResult:
    """Tests for TestResult."""

    __test__ = True

    def test_passed_has_no_reason(self) -> None:
        """Passed results carry no reason."""
        assert TestResult.passed().reason is None
        with pytest.raises(ValueError, match="cannot carry a reason"):
            TestResult(kind="passed", reason="why")

    @pytest.mark.parametrize("kind", ["failed", "skipped", "broken"])
    def test_other_kinds_require_reason(self, kind: str) -> None:
        """Non-passed results need a reason."""
        with pytest.raises(ValueError, match="requires a reason"):
            TestResult(kind=kind)  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        ("result", "good"),
        [
            (TestResult.passed(), True),
            (TestResult.skipped("x"), True),
            (TestResult.failed("x"), False),
            (TestResult.broken("x"), False),
        ],
    )
    def test_good(self, result: TestResult, good: bool) -> None:
        """Passed and skipped are good."""
        assert result.good is good

    def test_to_dict(self) -> None:
        """Serializes to kind and reason only."""
        assert TestResult.failed("1 of 2 tests failed").to_dict() == {
            "kind": "failed",
            "reason": "1 of 2 tests failed",
        }

    def test_str(self) -> None:
        """Renders kind and reason."""
        assert str(TestResult.passed()) == "passed"
        assert str(TestResult.broken("Bad")) == "broken: Bad"


@pytest.mark.parametrize(
    ("returncode", "expected"),
    [(0, Exited(0)), (1, Exited(1)), (-9, Signaled(9)), (-15, Signaled(15))],
)
def test_status_from_returncode(returncode: int, expected: object) -> None:
    """Negative return codes mean death by signal."""
    assert status_from_returncode(returncode) == expected


def test_exited_success() -> None:
    """Only exit code 0 is a success."""
    assert Exited(0).success
    assert not Exited(2).success


class TestTestProgram:
    """Tests for TestProgram."""

    __test__ = True

    def test_requires_absolute_path(self) -> None:
        """Relative paths are rejected."""
        with pytest.raises(ValidationError, match="must be absolute"):
            TestProgram(absolute_path=Path("bin/t"), interface="tap", test_suite="s")

    def test_name_is_basename(self) -> None:
        """The name of a program is its file name."""
        program = TestProgram(
            absolute_path=Path("/opt/tests/bin/t1"), interface="tap", test_suite="s"
        )

        assert program.name == "t1"
