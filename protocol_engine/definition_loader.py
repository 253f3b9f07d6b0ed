"""Loading of test suite definitions from suite.yaml files."""

import asyncio
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from protocol_engine.models.definition import SuiteDefinition
from protocol_engine.models.program import TestProgram


async def read_yaml_mapping(path: Path, *, what: str) -> dict[str, Any] | None:
    """Read a YAML file that must contain a mapping.

    Returns None for an empty file so callers can decide whether that is
    acceptable.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the content is not valid YAML or not a mapping

    """
    if not path.is_file():
        raise FileNotFoundError(f"{what} not found: {path}")

    text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML in {path}: expected a mapping at top level")
    return data


async def load_suite_definition(path: Path) -> SuiteDefinition:
    """Load and validate a suite definition.

    Raises:
        FileNotFoundError: If the suite file does not exist
        ValueError: If the file is empty, malformed or fails validation

    """
    data = await read_yaml_mapping(path, what="Suite file")
    if data is None:
        raise ValueError(f"Empty suite file: {path}")

    try:
        return SuiteDefinition.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid suite definition schema in {path}: {e}") from e


async def load_test_programs(path: Path) -> tuple[SuiteDefinition, list[TestProgram]]:
    """Load a suite file and resolve its programs relative to its directory."""
    definition = await load_suite_definition(path)
    root = path.absolute().parent
    return definition, list(definition.to_test_programs(root))
