"""Models describing executable test programs."""

from collections.abc import Mapping
from pathlib import Path

from pydantic import Field, PositiveFloat, field_validator

from protocol_engine.models.base import Model


class TestProgram(Model):
    """An executable test artifact and the protocol it speaks."""

    __test__ = False

    absolute_path: Path = Field(..., description="Absolute path to the binary")
    interface: str = Field(..., description="Name of the test interface (e.g. 'tap')")
    test_suite: str = Field(..., description="Suite the program belongs to")
    timeout: PositiveFloat | None = Field(
        default=None, description="Timeout in seconds (None uses the config default)"
    )
    metadata: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("absolute_path")
    @classmethod
    def _must_be_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError(f"Test program path must be absolute, got '{value}'")
        return value

    @property
    def name(self) -> str:
        return self.absolute_path.name
