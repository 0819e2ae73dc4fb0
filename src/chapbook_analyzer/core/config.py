"""
Analyzer configuration.

Options come from, in increasing priority:

1. Defaults
2. A ``chapbook.toml`` file
3. ``CHAPBOOK_*`` environment variables
4. Language client settings (camelCase keys)
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import make_config_error
from .types import StoryFormat

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "chapbook.toml"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class WarningOptions(BaseModel):
    """Optional warnings."""

    unknown_macro: bool = True
    unknown_passage: bool = True


class DiagnosticsOptions(BaseModel):
    warnings: WarningOptions = Field(default_factory=WarningOptions)


class StoryFormatOptions(BaseModel):
    """Pins the story format instead of reading it from StoryData."""

    format: str = "Chapbook"
    format_version: str | None = None


class AnalyzerOptions(BaseModel):
    """Complete analyzer configuration."""

    diagnostics: DiagnosticsOptions = Field(default_factory=DiagnosticsOptions)
    story_format: StoryFormatOptions | None = None
    log_level: str = "WARNING"

    def pinned_story_format(self) -> StoryFormat | None:
        """The configured story format, if its version is pinned."""
        if self.story_format is None or self.story_format.format_version is None:
            return None
        return StoryFormat(self.story_format.format, self.story_format.format_version)


# =============================================================================
# Configuration Loading
# =============================================================================


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate(data: dict[str, Any], path: str | None = None) -> AnalyzerOptions:
    try:
        options = AnalyzerOptions.model_validate(data)
    except ValidationError as e:
        raise make_config_error(f"Invalid configuration: {e}", path) from e
    options.log_level = options.log_level.upper()
    if options.log_level not in _LOG_LEVELS:
        raise make_config_error(f"Unknown log level '{options.log_level}'", path)
    return options


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise make_config_error(f"Malformed TOML: {e}", str(path)) from e
    except OSError as e:
        raise make_config_error(f"Can't read configuration: {e}", str(path)) from e

    section: dict[str, Any] = {}
    if "diagnostics" in data:
        section["diagnostics"] = data["diagnostics"]
    if "story_format" in data:
        section["story_format"] = data["story_format"]
    if "log_level" in data.get("server", {}):
        section["log_level"] = data["server"]["log_level"]
    return section


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise make_config_error(f"{name} must be a boolean, not '{value}'")


def _environment_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if (value := environ.get("CHAPBOOK_UNKNOWN_MACRO_WARNINGS")) is not None:
        overrides["diagnostics"] = {
            "warnings": {"unknown_macro": _parse_bool("CHAPBOOK_UNKNOWN_MACRO_WARNINGS", value)}
        }
    if value := environ.get("CHAPBOOK_FORMAT_VERSION"):
        overrides["story_format"] = {"format_version": value}
    if value := environ.get("CHAPBOOK_LOG_LEVEL"):
        overrides["log_level"] = value
    return overrides


def load_options(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AnalyzerOptions:
    """
    Load analyzer options from a config file and the environment.

    Args:
        config_path: Path to a chapbook.toml file. A missing file means defaults.
        environ: Environment to read overrides from (defaults to os.environ)

    Returns:
        AnalyzerOptions with every source applied

    Raises:
        ConfigError: If the file can't be read or holds invalid values
    """
    data: dict[str, Any] = {}
    path = None
    if config_path is not None and config_path.exists():
        path = str(config_path)
        data = _read_toml(config_path)
        logger.debug("Loaded configuration from %s", config_path)

    data = _merge(data, _environment_overrides(os.environ if environ is None else environ))
    return _validate(data, path)


def apply_client_settings(options: AnalyzerOptions, settings: Mapping[str, Any] | None) -> AnalyzerOptions:
    """
    Apply settings sent by a language client.

    Clients send camelCase keys, as in
    ``{"diagnostics": {"warnings": {"unknownMacro": false}}}``.
    """
    if not settings:
        return options

    overrides: dict[str, Any] = {}
    warnings = settings.get("diagnostics", {}).get("warnings", {})
    client_warnings = {
        key: warnings[camel]
        for key, camel in (("unknown_macro", "unknownMacro"), ("unknown_passage", "unknownPassage"))
        if camel in warnings
    }
    if client_warnings:
        overrides["diagnostics"] = {"warnings": client_warnings}
    story_format = settings.get("storyFormat", {})
    if "formatVersion" in story_format:
        overrides["story_format"] = {
            "format": story_format.get("format", "Chapbook"),
            "format_version": story_format["formatVersion"],
        }
    if "logLevel" in settings:
        overrides["log_level"] = settings["logLevel"]

    return _validate(_merge(options.model_dump(), overrides))
