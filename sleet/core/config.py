"""
Loading of local settings (sleet.json / sleet.yaml).

Lookup order:
- an explicit path (--config)
- the SLEET_CONFIG environment variable
- the working directory and each of its parents
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from sleet.core.errors import ConfigurationError
from sleet.domain.models import LocalSettings, SourceEntry

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SLEET_CONFIG"
SETTINGS_FILE_NAMES = ("sleet.json", "sleet.yaml", "sleet.yml")


def find_settings_file(start: Path) -> Optional[Path]:
    """Search a directory and all of its parents for a settings file."""
    directory = start.resolve()
    for candidate in [directory, *directory.parents]:
        for name in SETTINGS_FILE_NAMES:
            path = candidate / name
            if path.is_file():
                return path
    return None


def load_local_settings(path: Optional[str | Path] = None) -> LocalSettings:
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path).expanduser() if env_path else find_settings_file(Path.cwd())
    if path is None or not Path(path).is_file():
        raise ConfigurationError(f"Unable to find source settings. File not found '{path or 'sleet.json'}'.")

    settings_path = Path(path).resolve()
    logger.debug(f"Loading settings from {settings_path}")
    text = settings_path.read_text(encoding="utf-8-sig")
    try:
        if settings_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigurationError(f"Invalid settings file: {e}", config_file=str(settings_path)) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Invalid settings file, expected an object.", config_file=str(settings_path))
    try:
        settings = LocalSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings file: {e}", config_file=str(settings_path)) from e
    settings.path = str(settings_path)
    return settings


def get_source(settings: LocalSettings, name: Optional[str]) -> SourceEntry:
    """Find a source by name, a single configured source is used when no name is given."""
    if not settings.sources:
        raise ConfigurationError("Invalid config. No sources found.", config_file=settings.path)
    if not name:
        if len(settings.sources) == 1:
            return settings.sources[0]
        raise ConfigurationError("Multiple sources found in sleet.json. Specify one with --source.", config_file=settings.path)
    source = settings.find_source(name)
    if source is None:
        raise ConfigurationError(f"Unable to find source '{name}'.", config_file=settings.path)
    return source
