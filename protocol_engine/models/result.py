"""Canonical results of a single test case execution."""

from dataclasses import dataclass
from typing import Literal, Self

type ResultKind = Literal["passed", "failed", "skipped", "broken"]


@dataclass(frozen=True, kw_only=True)
class TestResult:
    """Outcome of a test case, independent of the protocol that produced it.

    Carries no process status, timing or file paths: it is the only artifact
    that leaves a test interface.
    """

    __test__ = False

    kind: ResultKind
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.kind == "passed" and self.reason is not None:
            raise ValueError("A passed result cannot carry a reason")
        if self.kind != "passed" and not self.reason:
            raise ValueError(f"A {self.kind} result requires a reason")

    @classmethod
    def passed(cls) -> Self:
        return cls(kind="passed")

    @classmethod
    def failed(cls, reason: str) -> Self:
        return cls(kind="failed", reason=reason)

    @classmethod
    def skipped(cls, reason: str) -> Self:
        return cls(kind="skipped", reason=reason)

    @classmethod
    def broken(cls, reason: str) -> Self:
        return cls(kind="broken", reason=reason)

    @property
    def good(self) -> bool:
        """Whether the result should not count against the test run."""
        return self.kind in {"passed", "skipped"}

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind, "reason": self.reason}

    def __str__(self) -> str:
        if self.reason is None:
            return self.kind
        return f"{self.kind}: {self.reason}"
