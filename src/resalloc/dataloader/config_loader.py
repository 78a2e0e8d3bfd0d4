# src/resalloc/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from resalloc.errors import ConfigError
from resalloc.schemas.models import Config

logger = logging.getLogger(__name__)


def _deep_merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """
    @brief
    Loader responsible for reading and validating runtime configuration.

    @details
    Reads YAML from disk, applies optional overrides (e.g. CLI flags), validates
    the result against the pydantic `Config` schema and raises `ConfigError`
    for every failure mode.
    """

    SUFFIXES = {".yaml", ".yml"}

    def load(self, path: Path | None, overrides: Mapping[str, Any] | None = None) -> Config:
        """
        @brief
        Load and validate configuration.

        @params
            path : Path | None
                Config file (.yaml/.yml). None means "defaults only".
            overrides : Mapping[str, Any] | None
                Nested values applied on top of the file content. Keys whose
                value is None are ignored.

        @returns
            Validated Config instance.

        @raises
            ConfigError
                Missing/unreadable file, bad YAML, or schema violations.
        """
        data: dict[str, Any] = {} if path is None else self._read_yaml(path)

        if overrides:
            cleaned = {k: v for k, v in overrides.items() if v is not None}
            data = _deep_merge(data, cleaned)

        cfg = self._validate(data)
        logger.debug("Config loaded from %s", path or "<defaults>")
        return cfg

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """
        @brief
        Read a YAML file into a plain mapping.

        @details
        Checks path type, existence and extension before parsing, then rejects
        empty documents and non-mapping roots. Overrides are merged later by
        `load`, so the mapping returned here is exactly what the file says.

        @params
            path : Path
                Path to the YAML configuration file.

        @returns
            Parsed configuration dictionary.

        @raises
            ConfigError
                Wrong path type, missing file, bad extension, YAML syntax or
                I/O failure, empty file, non-mapping root.
        """
        # (1) Path checks
        if not isinstance(path, Path):
            raise ConfigError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Pass a pathlib.Path object pointing to config.yaml.",
            )
        if not path.exists():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure config.yaml exists or omit --config to use defaults.",
            )
        if path.suffix.lower() not in self.SUFFIXES:
            raise ConfigError(
                message=f"Invalid configuration file extension: {path.suffix}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use .yaml or .yml extension for configuration files.",
            )

        # (2) Parse YAML
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax/indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions and path accessibility.",
            ) from e

        # (3) Structure checks
        if data is None:
            raise ConfigError(
                message="Configuration file is empty.",
                source="ConfigLoader._read_yaml",
                suggested_action="Populate config.yaml or omit --config to use defaults.",
            )
        if not isinstance(data, Mapping):
            raise ConfigError(
                message="Configuration root must be a mapping (key: value pairs).",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure top-level YAML structure uses key: value mappings.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any]) -> Config:
        """
        @brief
        Validate the merged mapping against the `Config` schema.

        @details
        Unknown root keys are rejected (`extra="forbid"`), nested sections get
        their defaults. The pydantic error is wrapped so callers only ever see
        `ConfigError`.

        @params
            data : dict[str, Any]
                Configuration mapping after overrides.

        @returns
            Validated Config instance.

        @raises
            ConfigError
                Any schema violation (unknown key, wrong type, out-of-range value).
        """
        try:
            return Config(**data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration structure: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names and types in config.yaml. "
                    "Remove unknown keys (extra fields are forbidden)."
                ),
            ) from e


__all__ = ["ConfigLoader"]
