"""Loading of the engine configuration file."""

import logging
from pathlib import Path

from pydantic import ValidationError

from protocol_engine.definition_loader import read_yaml_mapping
from protocol_engine.models.config import EngineConfig, default_config

log = logging.getLogger(__name__)


async def load_config(path: Path | None) -> EngineConfig:
    """Load the engine configuration, falling back to defaults.

    Args:
        path: Configuration file, or None to use the defaults

    Raises:
        FileNotFoundError: If path is given but does not exist
        ValueError: If the file is malformed or fails validation

    """
    if path is None:
        return default_config()

    data = await read_yaml_mapping(path, what="Config file")
    if data is None:
        log.info("Config file %s is empty; using defaults", path)
        return default_config()

    try:
        config = EngineConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration schema in {path}: {e}") from e

    log.debug("Loaded configuration from %s", path)
    return config
