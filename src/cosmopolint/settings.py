"""
cosmopolint - Settings files.

Settings are looked up in this order, first match wins:

1. an explicit ``--config`` file (``.toml``, ``.yaml`` or ``.yml``)
2. ``[tool.cosmopolint]`` in ``pyproject.toml`` of the working directory
3. ``.cosmopolint.yaml`` in the working directory

Keys may be written with dashes or underscores::

    [tool.cosmopolint]
    look-at-tests = false
    escape-hatches = ["(gettext).gettext", "(myapp.i18n).tr"]
    scripts = ["Han"]
    watched-symbols = ["(time).localtime"]

Command-line flags override whatever the file says.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import LintConfig
from .errors import ConfigError

# Use tomllib (Python 3.11+) or tomli as fallback
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

logger = logging.getLogger(__name__)

PYPROJECT = "pyproject.toml"
YAML_CONFIG = ".cosmopolint.yaml"
TOOL_KEY = "cosmopolint"


class LintSettings(BaseModel):
    """User-facing settings, as read from a file or the command line."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    look_at_tests: bool = Field(False, alias="look-at-tests")
    escape_hatches: list[str] = Field(default_factory=list, alias="escape-hatches")
    scripts: Optional[list[str]] = None
    watched_symbols: Optional[list[str]] = Field(None, alias="watched-symbols")

    @field_validator("escape_hatches", "scripts", "watched_symbols", mode="before")
    @classmethod
    def _split_commas(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return value

    def with_overrides(self, **overrides: Any) -> "LintSettings":
        """Copy with every non-None override applied."""
        update = {k: v for k, v in overrides.items() if v is not None}
        if not update:
            return self
        return LintSettings.model_validate({**self.model_dump(), **update})

    def to_config(self) -> LintConfig:
        return LintConfig.build(
            look_at_tests=self.look_at_tests,
            escape_hatches=self.escape_hatches,
            scripts=self.scripts,
            watched_symbols=self.watched_symbols,
        )


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"cannot read TOML: {e}", path) from e


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read YAML: {e}", path) from e
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping", path)
    return data


def _validate(data: dict[str, Any], source: Optional[Path]) -> LintSettings:
    try:
        return LintSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(e), source) from e


def load_settings_file(path: Path) -> LintSettings:
    """Load settings from an explicit file; the format follows the suffix."""
    if not path.is_file():
        raise ConfigError("config file not found", path)
    if path.suffix == ".toml":
        data = _read_toml(path)
        if path.name == PYPROJECT:
            data = data.get("tool", {}).get(TOOL_KEY, {})
        elif TOOL_KEY in data.get("tool", {}):
            data = data["tool"][TOOL_KEY]
    elif path.suffix in (".yaml", ".yml"):
        data = _read_yaml(path)
    else:
        raise ConfigError(f"unsupported config format {path.suffix!r}", path)
    logger.debug("loaded settings from %s", path)
    return _validate(data, path)


def discover_settings(cwd: Path, explicit: Optional[Path] = None) -> LintSettings:
    """Find and load settings for a run started in *cwd*."""
    if explicit is not None:
        return load_settings_file(explicit)

    pyproject = cwd / PYPROJECT
    if pyproject.is_file():
        section = _read_toml(pyproject).get("tool", {}).get(TOOL_KEY)
        if section is not None:
            logger.debug("using [tool.%s] from %s", TOOL_KEY, pyproject)
            return _validate(section, pyproject)

    yaml_path = cwd / YAML_CONFIG
    if yaml_path.is_file():
        return load_settings_file(yaml_path)

    logger.debug("no settings file found under %s, using defaults", cwd)
    return LintSettings()
