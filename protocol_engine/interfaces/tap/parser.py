"""Parser for the output of TAP test programs."""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

BAIL_OUT_TOKEN = "Bail out!"
NO_SKIP_REASON = "No reason specified"

_PLAN_START = re.compile(r"^\d+\.\.")
_PLAN = re.compile(r"^(\d+)\.\.(\d+)\s*(?:#\s*(.*))?$")
_SKIP_DIRECTIVE = re.compile(r"^SKIP\S*\s*(.*)$", re.IGNORECASE)
_RESULT = re.compile(r"^(not )?ok\b(.*)$")
_RESULT_DIRECTIVE = re.compile(r"#\s*(TODO|SKIP)\b", re.IGNORECASE)


@dataclass(frozen=True)
class TapPlan:
    """A plan declaring the range of tests the program will report."""

    first: int
    last: int

    @property
    def total(self) -> int:
        return self.last - self.first + 1

    def __str__(self) -> str:
        return f"{self.first}..{self.last}"


@dataclass(frozen=True)
class AllSkippedPlan:
    """A '1..0 # SKIP reason' plan: the whole program was skipped."""

    reason: str

    def __str__(self) -> str:
        return "1..0"


@dataclass(frozen=True, kw_only=True)
class TapSummary:
    """Summary of the TAP stream of a single test program run.

    ok_count + not_ok_count is the number of result lines actually seen,
    which need not agree with the plan.
    """

    bailed_out: bool = False
    plan: TapPlan | AllSkippedPlan
    ok_count: int = 0
    not_ok_count: int = 0


@dataclass(frozen=True)
class TapParseError:
    """Describes why a TAP stream could not be understood."""

    message: str

    def __str__(self) -> str:
        return self.message


type TapParseResult = TapSummary | TapParseError


def parse_tap_output(path: Path) -> TapParseResult:
    """Parse the TAP stream stored in path."""
    try:
        data = path.read_bytes()
    except OSError as e:
        return TapParseError(f"Failed to read TAP output {path}: {e.strerror or e}")

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        return TapParseError(f"Invalid UTF-8 data in TAP output: {e}")

    return parse_tap_lines(text.splitlines())


def parse_tap_lines(lines: Iterable[str]) -> TapParseResult:
    """Parse a sequence of TAP lines into a summary."""
    bailed_out = False
    plan: TapPlan | AllSkippedPlan | None = None
    ok_count = 0
    not_ok_count = 0

    for raw_line in lines:
        line = raw_line.rstrip("\r\n")

        if _PLAN_START.match(line):
            parsed = _parse_plan(line)
            if isinstance(parsed, TapParseError):
                return parsed
            if plan is not None:
                return TapParseError(
                    f"Found duplicate plan {parsed} (saw {plan} earlier)"
                )
            plan = parsed
        elif match := _RESULT.match(line):
            negated, rest = match.groups()
            if negated and not _RESULT_DIRECTIVE.search(rest):
                not_ok_count += 1
            else:
                ok_count += 1
        elif line.startswith(BAIL_OUT_TOKEN):
            bailed_out = True
        # Diagnostics ('#') and any other text carry no result information.

    if plan is None:
        return TapParseError("Output did not contain any TAP plan")

    return TapSummary(
        bailed_out=bailed_out,
        plan=plan,
        ok_count=ok_count,
        not_ok_count=not_ok_count,
    )


def _parse_plan(line: str) -> TapPlan | AllSkippedPlan | TapParseError:
    match = _PLAN.match(line)
    if match is None:
        return TapParseError(f"Invalid TAP plan '{line}'")

    first, last = int(match.group(1)), int(match.group(2))
    directive = match.group(3)

    if (first, last) == (1, 0):
        if directive is None:
            return AllSkippedPlan(reason=NO_SKIP_REASON)
        if skip := _SKIP_DIRECTIVE.match(directive):
            return AllSkippedPlan(reason=skip.group(1).strip() or NO_SKIP_REASON)
        return TapParseError(f"Invalid TAP plan '{line}'")

    if last < first:
        return TapParseError(f"Found reversed plan {first}..{last}")
    if first != 1:
        return TapParseError(f"Plans must start at 1, got {first}")

    return TapPlan(first=first, last=last)
