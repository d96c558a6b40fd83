"""Load environment variables from a .env file."""
from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def load_env(env_path: str | Path | None = None, override: bool = False) -> Path | None:
    """Load KEY=VALUE lines from a .env file into ``os.environ``.

    Args:
        env_path: Path to the .env file. If None, looks in the current
                  directory, then its parent.
        override: Replace variables already set in the environment.

    Returns the file that was loaded, or None.
    """
    if env_path is not None:
        candidates = [Path(env_path)]
    else:
        candidates = [Path.cwd() / ".env", Path.cwd().parent / ".env"]

    for path in candidates:
        if path.exists():
            _load_env_file(path, override)
            logger.debug("loaded environment from %s", path)
            return path
    return None


def _load_env_file(env_path: Path, override: bool) -> None:
    with open(env_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            if override or key not in os.environ:
                os.environ[key] = value
