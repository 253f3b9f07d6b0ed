"""Models for test suite definitions loaded from suite.yaml files."""

from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import Field, PositiveFloat

from protocol_engine.models.base import Model
from protocol_engine.models.program import TestProgram


class ProgramEntry(Model):
    """A single test program as written in a suite file."""

    path: str = Field(..., description="Path to the binary, relative to the suite file")
    interface: str = Field(..., description="Test interface the program implements")
    timeout: PositiveFloat | None = Field(default=None, description="Timeout in seconds")
    metadata: Mapping[str, str] = Field(default_factory=dict)


class SuiteDefinition(Model):
    """Complete suite definition loaded from suite.yaml."""

    version: str = Field(..., description="Suite definition schema version")
    test_suite: str = Field(..., description="Name of the test suite")
    test_programs: Sequence[ProgramEntry] = Field(default_factory=list)

    def to_test_programs(self, root: Path) -> Sequence[TestProgram]:
        """Resolve every entry against root into a TestProgram.

        Absolute entry paths are kept as they are.
        """
        return [
            TestProgram(
                absolute_path=(root / entry.path).absolute(),
                interface=entry.interface,
                test_suite=self.test_suite,
                timeout=entry.timeout,
                metadata=entry.metadata,
            )
            for entry in self.test_programs
        ]
