"""CLI entry point for the protocol engine."""

import argparse
import asyncio
import contextlib
import json
import logging
import sys
import tempfile
from collections.abc import Awaitable, Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

from protocol_engine.config_loader import load_config
from protocol_engine.definition_loader import load_test_programs
from protocol_engine.driver import EngineDriver, TestCaseResult
from protocol_engine.executor import ProcessExecutor
from protocol_engine.interfaces.base import MAIN_TEST_CASE, UnsupportedTestCaseError
from protocol_engine.interfaces.loading import (
    InterfaceNotFoundError,
    InterfaceRegistry,
    load_interface_registry,
)
from protocol_engine.models.config import EngineConfig
from protocol_engine.models.program import TestProgram

log = logging.getLogger("protocol_engine")

STATUS_SYMBOLS = {
    "passed": "✓",
    "failed": "✗",
    "skipped": "-",
    "broken": "!",
}


@dataclass(frozen=True, kw_only=True)
class CommandContext:
    """State shared by every subcommand; built once in main()."""

    registry: InterfaceRegistry
    parser: argparse.ArgumentParser
    command_parsers: Mapping[str, argparse.ArgumentParser]
    out: TextIO


type CommandFn = Callable[[argparse.Namespace, CommandContext], Awaitable[int]]


@dataclass(frozen=True, kw_only=True)
class Command:
    """A subcommand: how to declare its arguments and how to run it."""

    name: str
    help: str
    add_arguments: Callable[[argparse.ArgumentParser], None]
    run: CommandFn


def log_results_summary(
    log: logging.Logger, results: Sequence[TestCaseResult]
) -> None:
    """Log a formatted summary of test case results."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for case_result in results:
        result = case_result.result
        log.info(
            "%s %s: %s (%.2fs)",
            STATUS_SYMBOLS.get(result.kind, "?"),
            case_result.test_case_id,
            result.kind,
            case_result.duration,
        )
        if result.reason:
            log.info("  Reason: %s", result.reason)


def format_output(results: Sequence[TestCaseResult]) -> dict[str, Any]:
    """Format test case results for JSON output."""
    all_results = [
        {
            "test_case": case_result.test_case_id,
            "interface": case_result.program.interface,
            "duration": case_result.duration,
            **case_result.result.to_dict(),
        }
        for case_result in results
    ]

    return {
        "total": len(all_results),
        "passed": sum(1 for r in all_results if r["kind"] == "passed"),
        "failed": sum(1 for r in all_results if r["kind"] == "failed"),
        "skipped": sum(1 for r in all_results if r["kind"] == "skipped"),
        "broken": sum(1 for r in all_results if r["kind"] == "broken"),
        "results": all_results,
    }


@contextlib.contextmanager
def work_directory(config: EngineConfig) -> Iterator[Path]:
    """Yield the directory test case files go to.

    A configured directory is kept after the run; otherwise a temporary one
    is created and removed afterwards.
    """
    if config.work_directory is not None:
        config.work_directory.mkdir(parents=True, exist_ok=True)
        yield config.work_directory
        return

    with tempfile.TemporaryDirectory(prefix="protocol-engine.") as tmp:
        yield Path(tmp)


def make_driver(registry: InterfaceRegistry, config: EngineConfig) -> EngineDriver:
    return EngineDriver(
        registry=registry,
        executor=ProcessExecutor(unprivileged_user=config.unprivileged_user),
        config=config,
    )


def find_program(
    programs: Sequence[TestProgram], suite_file: Path, name: str
) -> TestProgram | None:
    """Find a program by its path relative to the suite file or its basename."""
    wanted = (suite_file.absolute().parent / name).absolute()
    for program in programs:
        if program.absolute_path == wanted:
            return program
    for program in programs:
        if program.name == name:
            return program
    return None


async def run_test(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Run all test cases of a suite and return exit code."""
    config = await load_config(args.config)
    definition, programs = await load_test_programs(args.suite_file)
    log.info(
        "Loaded suite %s with %d program(s)", definition.test_suite, len(programs)
    )

    driver = make_driver(ctx.registry, config)
    with work_directory(config) as work_dir:
        results = await driver.run_programs(programs, work_dir)

    log_results_summary(log, results)
    if args.json:
        print(json.dumps(format_output(results), indent=2), file=ctx.out)

    return 0 if all(r.result.good for r in results) else 1


async def run_list(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Print every test case of a suite."""
    _, programs = await load_test_programs(args.suite_file)
    driver = make_driver(ctx.registry, await load_config(args.config))
    for program, case_name in driver.list_test_cases(programs):
        print(
            f"{program.absolute_path}:{case_name} ({program.interface})",
            file=ctx.out,
        )
    return 0


async def run_debug(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Run one test case and show everything it printed."""
    program_name, _, case_name = args.test_case.partition(":")
    case_name = case_name or MAIN_TEST_CASE

    config = await load_config(args.config)
    _, programs = await load_test_programs(args.suite_file)
    program = find_program(programs, args.suite_file, program_name)
    if program is None:
        log.error("No test program '%s' in %s", program_name, args.suite_file)
        return 1

    interface = ctx.registry.get(program.interface)
    if case_name not in interface.list_test_cases(program):
        log.error("Test program %s has no test case '%s'", program.name, case_name)
        return 1

    driver = make_driver(ctx.registry, config)
    with work_directory(config) as work_dir:
        case_result = await driver.run_test_case(program, case_name, work_dir)
        for label, path in (
            ("stdout", case_result.stdout_path),
            ("stderr", case_result.stderr_path),
        ):
            print(f"--- {label} ---", file=ctx.out)
            print(path.read_text(errors="replace"), end="", file=ctx.out)

    print(f"{case_result.test_case_id} -> {case_result.result}", file=ctx.out)
    return 0 if case_result.result.good else 1


async def run_config(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Print the effective configuration."""
    config = await load_config(args.config)
    for key, value in config.to_properties().items():
        print(f"{key} = {value}", file=ctx.out)
    return 0


async def run_help(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Print general help or the help of a single command."""
    if args.command_name is None:
        print(ctx.parser.format_help(), end="", file=ctx.out)
        print("\nAvailable interfaces: " + ", ".join(ctx.registry.names()), file=ctx.out)
        return 0

    command_parser = ctx.command_parsers.get(args.command_name)
    if command_parser is None:
        log.error("Unknown command '%s'", args.command_name)
        return 1
    print(command_parser.format_help(), end="", file=ctx.out)
    return 0


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the engine configuration file (YAML)",
    )


def _add_suite_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("suite_file", type=Path, help="Path to the suite.yaml file")
    _add_config_argument(parser)


def _add_test_arguments(parser: argparse.ArgumentParser) -> None:
    _add_suite_arguments(parser)
    parser.add_argument(
        "--json", action="store_true", help="Print results as JSON on stdout"
    )


def _add_debug_arguments(parser: argparse.ArgumentParser) -> None:
    _add_suite_arguments(parser)
    parser.add_argument(
        "test_case", help="Test case to run, as PROGRAM[:CASE] (CASE defaults to main)"
    )


def _add_help_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "command_name", nargs="?", default=None, help="Command to describe"
    )


COMMANDS: Sequence[Command] = (
    Command(
        name="test",
        help="Run the test cases of a suite",
        add_arguments=_add_test_arguments,
        run=run_test,
    ),
    Command(
        name="list",
        help="List the test cases of a suite",
        add_arguments=_add_suite_arguments,
        run=run_list,
    ),
    Command(
        name="debug",
        help="Run a single test case and show its output",
        add_arguments=_add_debug_arguments,
        run=run_debug,
    ),
    Command(
        name="config",
        help="Show the effective configuration",
        add_arguments=_add_config_argument,
        run=run_config,
    ),
    Command(
        name="help",
        help="Show help for the engine or one of its commands",
        add_arguments=_add_help_arguments,
        run=run_help,
    ),
)


def build_parser(
    commands: Sequence[Command],
) -> tuple[argparse.ArgumentParser, dict[str, argparse.ArgumentParser]]:
    """Build the argument parser for the given commands."""
    parser = argparse.ArgumentParser(
        prog="protocol-engine",
        description="Run test programs of any supported test protocol",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    command_parsers: dict[str, argparse.ArgumentParser] = {}
    for command in commands:
        command_parser = subparsers.add_parser(command.name, help=command.help)
        command.add_arguments(command_parser)
        command_parser.set_defaults(run=command.run)
        command_parsers[command.name] = command_parser

    return parser, command_parsers


async def run(
    argv: Sequence[str] | None = None,
    *,
    registry: InterfaceRegistry | None = None,
    out: TextIO | None = None,
) -> int:
    """Parse argv, run the selected command and return its exit code."""
    parser, command_parsers = build_parser(COMMANDS)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    ctx = CommandContext(
        registry=registry if registry is not None else load_interface_registry(),
        parser=parser,
        command_parsers=command_parsers,
        out=out if out is not None else sys.stdout,
    )

    try:
        return await args.run(args, ctx)
    except UnsupportedTestCaseError:
        raise
    except (FileNotFoundError, ValueError, InterfaceNotFoundError) as e:
        log.error("%s", e)
        return 2


def main() -> None:
    """CLI entry point."""
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":  # pragma: no cover
    main()
