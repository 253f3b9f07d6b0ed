"""Abstract base class for test interfaces (test protocols)."""

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn

from protocol_engine.models.program import TestProgram
from protocol_engine.models.result import TestResult
from protocol_engine.models.status import ProcessStatus, Signaled

ENV_PREFIX = "TEST_ENV_"
MAIN_TEST_CASE = "main"


class UnsupportedTestCaseError(ValueError):
    """Raised when a test interface is asked to run a case it cannot address.

    This is a bug in the caller, not a property of the test program, so it
    is never converted into a TestResult.
    """


@dataclass(frozen=True, kw_only=True)
class Invocation:
    """Everything needed to spawn one test case."""

    argv: Sequence[str]
    env: Mapping[str, str] = field(repr=False)

    @property
    def executable(self) -> str:
        return self.argv[0]


def export_test_vars(
    env_vars: Mapping[str, str], base: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Return base (default: os.environ) with env_vars added as TEST_ENV_*."""
    env = dict(os.environ if base is None else base)
    for key, value in env_vars.items():
        env[f"{ENV_PREFIX}{key}"] = value
    return env


class TestInterface(ABC):
    """Contract every test protocol implements.

    An interface knows how to start a test case of a program speaking its
    protocol and how to turn the evidence left behind (termination status
    plus captured files) into a canonical TestResult. Implementations hold
    no mutable state, so a single instance serves concurrent test cases.
    """

    __test__ = False

    name: str

    def list_test_cases(self, program: TestProgram) -> Sequence[str]:
        """Return the test cases a program exposes through this interface."""
        return [MAIN_TEST_CASE]

    @abstractmethod
    def build_invocation(
        self,
        program: TestProgram,
        case_name: str,
        env_vars: Mapping[str, str],
        control_dir: Path,
    ) -> Invocation:
        """Describe how to run a test case.

        Args:
            program: The test program to execute
            case_name: Name of the test case to invoke
            env_vars: User-provided variables to pass to the test program
            control_dir: Directory where the interface may place control files

        Returns:
            Invocation with the argv and full environment of the subprocess

        Raises:
            UnsupportedTestCaseError: If case_name is not a case of program

        """

    @abstractmethod
    def compute_result(
        self,
        status: ProcessStatus | None,
        control_dir: Path,
        stdout_path: Path,
        stderr_path: Path,
    ) -> TestResult:
        """Compute the result of a test case from its captured evidence.

        Args:
            status: Termination status of the test case, or None if it timed out
            control_dir: Directory where the interface may have placed control files
            stdout_path: File holding the stdout of the test case
            stderr_path: File holding the stderr of the test case

        Returns:
            The canonical result of the test case

        """

    def exec_test(
        self,
        program: TestProgram,
        case_name: str,
        env_vars: Mapping[str, str],
        control_dir: Path,
    ) -> NoReturn:
        """Replace the current process with the test case.

        Meant to be called from a process dedicated to the test case; all
        outcome information is collected later through compute_result.
        """
        invocation = self.build_invocation(program, case_name, env_vars, control_dir)
        os.execve(invocation.executable, list(invocation.argv), dict(invocation.env))

    def _check_main_case(self, program: TestProgram, case_name: str) -> None:
        if case_name != MAIN_TEST_CASE:
            raise UnsupportedTestCaseError(
                f"{self.name} test program {program.absolute_path} only has a "
                f"'{MAIN_TEST_CASE}' test case, got '{case_name}'"
            )


class SingleCaseInterface(TestInterface):
    """Base for protocols whose programs are one implicit 'main' test case."""

    def build_invocation(
        self,
        program: TestProgram,
        case_name: str,
        env_vars: Mapping[str, str],
        control_dir: Path,
    ) -> Invocation:
        """Run the program with no arguments and TEST_ENV_* variables set."""
        self._check_main_case(program, case_name)
        return Invocation(
            argv=[str(program.absolute_path)],
            env=export_test_vars(env_vars),
        )


def compute_infrastructure_result(status: Signaled | None) -> TestResult:
    """Result of a test case that did not exit on its own.

    Timeouts and signals mean the same thing whatever the protocol, so
    interfaces only look at captured output for processes that exited.
    """
    match status:
        case None:
            return TestResult.broken("Test case timed out")
        case Signaled(signal=signal):
            return TestResult.broken(f"Received signal {signal}")
