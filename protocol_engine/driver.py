"""Engine driver running test cases through their test interfaces."""

import asyncio
import logging
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from protocol_engine.executor import ProcessExecutor
from protocol_engine.interfaces.loading import InterfaceRegistry
from protocol_engine.models.config import EngineConfig
from protocol_engine.models.program import TestProgram
from protocol_engine.models.result import TestResult

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TestCaseResult:
    """Result of one test case together with where its output lives."""

    __test__ = False

    program: TestProgram
    case_name: str
    result: TestResult
    duration: float
    stdout_path: Path
    stderr_path: Path

    @property
    def test_case_id(self) -> str:
        return f"{self.program.absolute_path}:{self.case_name}"


@dataclass(frozen=True, kw_only=True)
class EngineDriver:
    """Runs test cases: interface builds, executor spawns, interface judges."""

    registry: InterfaceRegistry
    executor: ProcessExecutor
    config: EngineConfig

    def list_test_cases(
        self, programs: Sequence[TestProgram]
    ) -> Sequence[tuple[TestProgram, str]]:
        """Expand programs into (program, case name) pairs."""
        return [
            (program, case_name)
            for program in programs
            for case_name in self.registry.get(program.interface).list_test_cases(
                program
            )
        ]

    async def run_programs(
        self, programs: Sequence[TestProgram], work_dir: Path
    ) -> Sequence[TestCaseResult]:
        """Run every test case of programs, at most config.parallelism at once.

        Args:
            programs: Test programs to run
            work_dir: Directory under which per-case files are created

        Returns:
            One result per test case, in the order the cases were listed

        """
        test_cases = self.list_test_cases(programs)
        if not test_cases:
            log.info("No test cases to run")
            return []

        log.info(
            "Running %d test case(s) with parallelism %d",
            len(test_cases),
            self.config.parallelism,
        )
        semaphore = asyncio.Semaphore(self.config.parallelism)

        async def _bounded(program: TestProgram, case_name: str) -> TestCaseResult:
            async with semaphore:
                return await self.run_test_case(program, case_name, work_dir)

        results = await asyncio.gather(
            *(_bounded(program, case_name) for program, case_name in test_cases)
        )
        log.info("Test execution completed")
        return results

    async def run_test_case(
        self, program: TestProgram, case_name: str, work_dir: Path
    ) -> TestCaseResult:
        """Run a single test case and compute its result.

        Raises:
            InterfaceNotFoundError: If the program names an unknown interface
            UnsupportedTestCaseError: If the interface cannot address case_name

        """
        interface = self.registry.get(program.interface)

        case_dir = Path(
            tempfile.mkdtemp(prefix=f"{program.name}.{case_name}.", dir=work_dir)
        )
        control_dir = case_dir / "control"
        control_dir.mkdir()
        self.executor.grant_access(case_dir, control_dir)
        stdout_path = case_dir / "stdout.txt"
        stderr_path = case_dir / "stderr.txt"

        invocation = interface.build_invocation(
            program,
            case_name,
            self.config.test_suite_vars(program.test_suite),
            control_dir,
        )
        timeout = program.timeout or self.config.default_timeout

        log.info("Running %s:%s", program.absolute_path, case_name)
        loop = asyncio.get_running_loop()
        start = loop.time()
        try:
            status = await self.executor.execute(
                invocation,
                stdout_path=stdout_path,
                stderr_path=stderr_path,
                timeout=timeout,
                cwd=control_dir,
            )
        except OSError as e:
            log.warning("Failed to execute %s: %s", program.absolute_path, e)
            result = TestResult.broken(f"Failed to execute test program: {e}")
        else:
            result = await asyncio.to_thread(
                interface.compute_result, status, control_dir, stdout_path, stderr_path
            )
        duration = loop.time() - start

        log.info(
            "Test case %s:%s %s (%.2fs)",
            program.absolute_path,
            case_name,
            result,
            duration,
        )
        return TestCaseResult(
            program=program,
            case_name=case_name,
            result=result,
            duration=duration,
            stdout_path=stdout_path,
            stderr_path=stderr_path,
        )
