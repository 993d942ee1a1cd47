"""Shared CLI state passed to every command via the click context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import click

from beeper_reader.config import ReaderConfig, resolve_db_path
from beeper_reader.store import BeeperStore, StoreOptions

logger = logging.getLogger(__name__)


@dataclass
class App:
    """Global options (--db, --json, --no-bridge) plus loaded config."""

    db_path: Optional[str] = None
    json_output: bool = False
    no_bridge: bool = False
    config: ReaderConfig = field(default_factory=ReaderConfig)

    def open_store(self) -> Tuple[BeeperStore, Path]:
        """Resolve index.db and open it read-only."""
        path = resolve_db_path(self.db_path, self.config)
        logger.debug("Using database %s", path)
        options = StoreOptions(
            bridge_lookup=self.config.bridge_lookup and not self.no_bridge,
            bridge_root=self.config.bridge_root,
        )
        return BeeperStore.open(path, options), path


pass_app = click.make_pass_decorator(App)
