"""Engine configuration models."""

import pwd
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

from pydantic import Field, PositiveFloat, PositiveInt, field_serializer, field_validator

from protocol_engine.models.base import Model


@dataclass(frozen=True)
class UnprivilegedUser:
    """A system user test cases are run as when the engine runs as root."""

    name: str
    uid: int
    gid: int

    @classmethod
    def from_string(cls, text: str) -> Self:
        """Look up a user given either its name or its numeric uid."""
        try:
            entry = pwd.getpwuid(int(text)) if text.isdigit() else pwd.getpwnam(text)
        except KeyError:
            raise ValueError(f"Cannot find user '{text}'") from None
        return cls(name=entry.pw_name, uid=entry.pw_uid, gid=entry.pw_gid)

    def __str__(self) -> str:
        return self.name


class EngineConfig(Model):
    """Root configuration for the engine."""

    parallelism: PositiveInt = Field(
        default=1, description="Maximum number of test cases running at once"
    )
    default_timeout: PositiveFloat = Field(
        default=300.0, description="Timeout in seconds for programs that set none"
    )
    unprivileged_user: UnprivilegedUser | None = Field(default=None)
    work_directory: Path | None = Field(
        default=None, description="Where control directories and outputs go"
    )
    test_suites: Mapping[str, Mapping[str, str]] = Field(
        default_factory=dict, description="Per-suite variables passed to tests"
    )

    @field_validator("unprivileged_user", mode="before")
    @classmethod
    def _parse_user(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("unprivileged_user must be a user name or uid")
        if isinstance(value, str | int):
            return UnprivilegedUser.from_string(str(value))
        return value

    @field_validator("test_suites", mode="before")
    @classmethod
    def _stringify_variables(cls, value: Any) -> Any:
        # YAML turns `timeout: 10` into an int; test variables are always text.
        if not isinstance(value, Mapping):
            return value
        return {
            suite: (
                {
                    key: str(var).lower() if isinstance(var, bool) else str(var)
                    for key, var in variables.items()
                }
                if isinstance(variables, Mapping)
                else variables
            )
            for suite, variables in value.items()
        }

    @field_serializer("unprivileged_user")
    def _render_user(self, value: UnprivilegedUser | None) -> str | None:
        return None if value is None else str(value)

    def test_suite_vars(self, test_suite: str) -> Mapping[str, str]:
        """Return the variables configured for a test suite."""
        return self.test_suites.get(test_suite, {})

    def to_properties(self) -> Mapping[str, str]:
        """Flatten the configuration into dotted key/value pairs."""
        properties: dict[str, str] = {
            "parallelism": str(self.parallelism),
            "default_timeout": f"{self.default_timeout:g}",
        }
        if self.unprivileged_user is not None:
            properties["unprivileged_user"] = str(self.unprivileged_user)
        if self.work_directory is not None:
            properties["work_directory"] = str(self.work_directory)
        for suite, variables in sorted(self.test_suites.items()):
            for key, value in sorted(variables.items()):
                properties[f"test_suites.{suite}.{key}"] = value
        return properties


def default_config() -> EngineConfig:
    """Configuration used when the user supplies none."""
    return EngineConfig()
