# src/alchemist/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import ConfigError
from alchemist.schemas.models import Config

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class ConfigLoader:
    """
    @brief
    Reads config.yaml and validates it into a Config model.

    @details
    Every failure mode (missing file, wrong extension, YAML syntax, empty
    document, non-mapping root, schema violation) surfaces as a ConfigError
    carrying a suggested action for the operator.
    """

    def load(self, path: Path | str) -> Config:
        """
        @brief
        Load and validate configuration from a YAML file.

        @params
            path : Path | str
                Location of the .yaml / .yml file.

        @returns
            Validated Config with defaults applied for omitted keys.

        @raises
            ConfigError
        """
        data = self._read_yaml(Path(path))
        cfg = self._validate(data)
        logger.debug("Configuration loaded from %s", path)
        return cfg

    def load_or_default(self, path: Path | str | None) -> Config:
        """Config from `path`, or Config() when no path is given."""
        if path is None:
            return Config()
        return self.load(path)

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        # (1) File must exist and look like YAML
        if not path.is_file():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Pass --config pointing to an existing config.yaml.",
            )
        if path.suffix.lower() not in _YAML_SUFFIXES:
            raise ConfigError(
                message=f"Invalid configuration file extension: {path.suffix or '(none)'}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use a .yaml or .yml configuration file.",
            )

        # (2) Parse with the safe loader
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax or indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions.",
            ) from e

        # (3) Root must be a non-empty mapping
        if data is None:
            raise ConfigError(
                message="Configuration file is empty.",
                source="ConfigLoader._read_yaml",
                suggested_action="Add at least one key, e.g. 'log_level: INFO'.",
            )
        if not isinstance(data, Mapping):
            raise ConfigError(
                message=f"Configuration root must be a mapping, got {type(data).__name__}.",
                source="ConfigLoader._read_yaml",
                suggested_action="Use 'key: value' pairs at the top level.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any]) -> Config:
        try:
            return Config.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration structure: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names and types in config.yaml; unknown keys are rejected."
                ),
            ) from e


__all__ = ["ConfigLoader"]
