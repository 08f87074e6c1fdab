"""
create-config: write a starter sleet.json.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sleet.core.errors import ConfigurationError
from sleet.domain.models import LocalSettings, SourceEntry

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "sleet.json"


def get_template_source(storage_type: str) -> SourceEntry:
    storage_type = storage_type.lower()
    if storage_type == "local":
        return SourceEntry(name="myLocalFeed", type="local", path=str(Path.cwd() / "myFeed"))
    if storage_type == "http":
        return SourceEntry(name="myHttpFeed", type="http", path="https://example.com/myFeed/")
    raise ConfigurationError(f"Unknown source type '{storage_type}'. Use local or http.")


def run_create_config(storage_type: str = "local", output: Optional[Path] = None) -> bool:
    """
    Write a template settings file with one source of the given type.

    output may be a directory, the file is then named sleet.json. Existing
    files are never overwritten.
    """
    source = get_template_source(storage_type)

    output_path = Path(output or Path.cwd()).expanduser().resolve()
    if output_path.is_dir():
        output_path = output_path / CONFIG_FILE_NAME

    if output_path.exists():
        logger.error(f"File already exists {output_path}")
        return False
    if not output_path.parent.is_dir():
        logger.error(f"Directory does not exist {output_path.parent}")
        return False

    settings = LocalSettings(sources=[source])
    logger.info(f"Writing config template to {output_path}")
    output_path.write_text(settings.model_dump_json(indent=2, by_alias=True, exclude_none=True), encoding="utf-8")
    logger.info("Modify this template by changing the name and path for your own feed.")
    return True
