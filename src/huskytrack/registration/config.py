"""Config module."""
from pathlib import Path

from attr import frozen
from huskytrack.registration.models.config import Config
from huskytrack.registration.serialization import get_config_converter
from loguru import logger
from ruamel.yaml import YAML

yaml = YAML(typ="safe")


@frozen
class CommandLineConfig:
    """Options for the ``huskytrack-registration`` command."""

    port: int
    bind: str
    root_path: str
    debug: bool
    reload: bool
    config: Path


def load_config(path: Path) -> Config:
    """Load the YAML config file at ``path``.

    Raises:
        ValueError: If the file does not contain a mapping.
    """
    doc = yaml.load(path)
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: expected a mapping of config settings")
    config = get_config_converter().structure(doc, Config)
    logger.debug(f"Loaded config from {path}")
    return config
