"""Fixtures for integration tests."""

import stat
from pathlib import Path
from typing import Protocol

import pytest


class MakeScriptFn(Protocol):
    """Protocol for test script creation function."""

    def __call__(self, name: str, body: str) -> Path:
        """Write an executable shell script and return its path."""


@pytest.fixture
def make_script(tmp_path: Path) -> MakeScriptFn:
    """Return a function writing executable /bin/sh scripts under tmp_path."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Directory for per-case output files."""
    path = tmp_path / "work"
    path.mkdir()
    return path
