"""
Working directory where feed files are staged before they are pushed.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CACHE_DIR_ENV_VAR = "SLEET_CACHE_DIR"


class LocalCache:
    """A per-run scratch directory, removed again by close()."""

    def __init__(self, root: Optional[Path] = None):
        env_path = os.environ.get(CACHE_DIR_ENV_VAR)
        if root is None and env_path:
            root = Path(env_path).expanduser()
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)

        self.root = Path(tempfile.mkdtemp(prefix="sleet-", dir=str(root) if root else None))

    def get_new_temp_path(self) -> Path:
        return self.root / uuid.uuid4().hex

    def close(self) -> None:
        if self.root.exists():
            logger.debug(f"Removing local cache {self.root}")
            shutil.rmtree(self.root, ignore_errors=True)

    def __enter__(self) -> "LocalCache":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
