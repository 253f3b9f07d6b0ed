"""Tests for engine configuration models."""

import os
import pwd
from pathlib import Path

import pytest
from pydantic import ValidationError

from protocol_engine.models.config import EngineConfig, UnprivilegedUser, default_config


@pytest.fixture
def current_user() -> pwd.struct_passwd:
    """Return the passwd entry of the user running the tests."""
    return pwd.getpwuid(os.getuid())


def test_defaults() -> None:
    """The default configuration runs one case at a time."""
    config = default_config()

    assert config.parallelism == 1
    assert config.default_timeout == 300
    assert config.unprivileged_user is None
    assert config.test_suite_vars("anything") == {}


@pytest.mark.parametrize("field", ["parallelism", "default_timeout"])
def test_rejects_non_positive_values(field: str) -> None:
    """Parallelism and timeouts must be positive."""
    with pytest.raises(ValidationError):
        EngineConfig.model_validate({field: 0})


def test_rejects_unknown_keys() -> None:
    """Typos in the configuration are errors."""
    with pytest.raises(ValidationError, match="paralelism"):
        EngineConfig.model_validate({"paralelism": 2})


def test_test_suite_variables_are_strings() -> None:
    """Scalar YAML values become strings."""
    config = EngineConfig.model_validate(
        {"test_suites": {"suite": {"count": 3, "ratio": 0.5, "verbose": True}}}
    )

    assert config.test_suite_vars("suite") == {
        "count": "3",
        "ratio": "0.5",
        "verbose": "true",
    }


class TestUnprivilegedUser:
    """Tests for the unprivileged_user setting."""

    def test_from_name(self, current_user: pwd.struct_passwd) -> None:
        """Users can be given by name."""
        user = UnprivilegedUser.from_string(current_user.pw_name)

        assert user.uid == current_user.pw_uid
        assert str(user) == current_user.pw_name

    def test_from_uid(self, current_user: pwd.struct_passwd) -> None:
        """Users can be given by numeric uid."""
        config = EngineConfig.model_validate({"unprivileged_user": current_user.pw_uid})

        assert config.unprivileged_user is not None
        assert config.unprivileged_user.name == current_user.pw_name

    def test_unknown_user(self) -> None:
        """Unknown users fail validation."""
        with pytest.raises(ValidationError, match="Cannot find user"):
            EngineConfig.model_validate(
                {"unprivileged_user": "no-such-user-for-protocol-engine"}
            )

    def test_renders_as_name(self, current_user: pwd.struct_passwd) -> None:
        """Dumping the config renders the user back to its name."""
        config = EngineConfig.model_validate(
            {"unprivileged_user": current_user.pw_name}
        )

        assert config.model_dump()["unprivileged_user"] == current_user.pw_name


def test_to_properties(current_user: pwd.struct_passwd) -> None:
    """Flattens the configuration into sorted dotted keys."""
    config = EngineConfig.model_validate(
        {
            "parallelism": 4,
            "default_timeout": 30,
            "unprivileged_user": current_user.pw_name,
            "work_directory": "/tmp/work",
            "test_suites": {"b": {"y": "2", "x": "1"}, "a": {"z": "3"}},
        }
    )

    assert list(config.to_properties().items()) == [
        ("parallelism", "4"),
        ("default_timeout", "30"),
        ("unprivileged_user", current_user.pw_name),
        ("work_directory", str(Path("/tmp/work"))),
        ("test_suites.a.z", "3"),
        ("test_suites.b.x", "1"),
        ("test_suites.b.y", "2"),
    ]
