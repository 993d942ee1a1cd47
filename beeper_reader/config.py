"""Configuration: optional YAML settings file and index.db path resolution.

Settings live in ~/.config/beeper-reader/config.yaml (or the file named by
BEEPER_READER_CONFIG). Every key is optional:

    db_path: ~/Library/Application Support/BeeperTexts/index.db
    bridge_root: ~/Library/Application Support/BeeperTexts
    bridge_lookup: true
    format: rich
    limit: 50
"""

from __future__ import annotations

import glob
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError, field_validator

from beeper_reader.errors import DatabaseNotFoundError
from beeper_reader.store.models import DEFAULT_LIMIT, MessageFormat

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "beeper-reader" / "config.yaml"
CONFIG_ENV_VAR = "BEEPER_READER_CONFIG"
DB_ENV_VAR = "BEEPER_DB"

_MAC_SUPPORT = "~/Library/Application Support"


class ReaderConfig(BaseModel):
    """Settings loaded from config.yaml, with defaults for missing keys."""

    model_config = ConfigDict(extra="ignore")

    db_path: Optional[str] = None
    bridge_root: Optional[str] = None
    bridge_lookup: StrictBool = True
    format: MessageFormat = MessageFormat.RICH
    limit: StrictInt = Field(default=DEFAULT_LIMIT, gt=0)

    @field_validator("db_path", "bridge_root", mode="before")
    @classmethod
    def clean_path(cls, v):
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("must be a path string")
        return v.strip() or None

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


def _config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(expand_path(env_path))
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> ReaderConfig:
    """Load config.yaml; a missing or malformed file yields defaults."""
    path = path or _config_path()
    if not path.is_file():
        return ReaderConfig()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Failed to read config %s: %s", path, exc)
        return ReaderConfig()

    if raw is None:
        return ReaderConfig()
    if not isinstance(raw, dict):
        logger.warning("Config %s is not a mapping, ignoring", path)
        return ReaderConfig()

    config = _validate(raw, path)
    logger.debug("Loaded config from %s", path)
    return config


def _validate(raw: Dict[str, Any], path: Path) -> ReaderConfig:
    """Validate the mapping; keys that fail validation fall back to defaults."""
    try:
        return ReaderConfig.model_validate(raw)
    except ValidationError as exc:
        bad_keys = set()
        for err in exc.errors():
            key = err["loc"][0] if err["loc"] else None
            logger.warning("Config %s: ignoring %s: %s", path, key, err["msg"])
            bad_keys.add(key)
    return ReaderConfig.model_validate({k: v for k, v in raw.items() if k not in bad_keys})


def expand_path(path: str) -> str:
    """Expand `~` and environment variables."""
    if not path:
        return path
    return os.path.expandvars(os.path.expanduser(path))


def default_db_paths() -> List[str]:
    """Well-known index.db locations for the current platform."""
    paths = [
        f"{_MAC_SUPPORT}/BeeperTexts/index.db",
        f"{_MAC_SUPPORT}/Beeper/index.db",
    ]
    if sys.platform.startswith("linux"):
        paths += [
            "~/.config/BeeperTexts/index.db",
            "~/.config/Beeper/index.db",
        ]
    elif sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            paths += [
                os.path.join(app_data, "BeeperTexts", "index.db"),
                os.path.join(app_data, "Beeper", "index.db"),
            ]
    return paths


def _glob_candidates() -> List[str]:
    pattern = expand_path(f"{_MAC_SUPPORT}/Beeper*/**/index.db")
    return sorted(glob.glob(pattern, recursive=True))


def resolve_db_path(explicit: Optional[str] = None, config: Optional[ReaderConfig] = None) -> Path:
    """Find index.db.

    Priority:
    1. explicit path (--db); must exist
    2. BEEPER_DB environment variable
    3. db_path from config.yaml
    4. platform default locations
    5. glob under ~/Library/Application Support/Beeper*
    """
    if explicit:
        path = Path(expand_path(explicit))
        if path.is_file():
            return path
        raise DatabaseNotFoundError(f"database not found at {path}", [str(path)])

    tried: List[str] = []
    candidates: List[str] = []

    env_path = os.environ.get(DB_ENV_VAR)
    if env_path:
        candidates.append(env_path)
    if config is not None and config.db_path:
        candidates.append(config.db_path)
    candidates.extend(default_db_paths())

    for candidate in candidates:
        path = Path(expand_path(candidate))
        tried.append(str(path))
        if path.is_file():
            return path

    for candidate in _glob_candidates():
        tried.append(candidate)
        if Path(candidate).is_file():
            return Path(candidate)

    raise DatabaseNotFoundError(
        f"could not find Beeper database; tried: {', '.join(tried)}", tried
    )
