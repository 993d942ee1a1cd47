"""Megabridge name lookup for DM threads without a title.

Beeper keeps a `megabridge.db` for each local bridge under
`<support dir>/local-<platform>/`. Each maps a Matrix room (`portal.mxid`)
to the remote user on the other side (`portal.other_user_id`) and that
user to a display name (`ghost.name`). Used when a DM thread has no title.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from beeper_reader.errors import NameLookupError

logger = logging.getLogger(__name__)

BRIDGE_DIR_PREFIX = "local-"
BRIDGE_DB_NAME = "megabridge.db"
BUSY_TIMEOUT_SECONDS = 5.0


def normalize_platform(platform: str) -> str:
    """Lower-case a platform/account ID and strip the `local-` prefix."""
    platform = platform.strip().lower()
    if platform.startswith(BRIDGE_DIR_PREFIX):
        platform = platform[len(BRIDGE_DIR_PREFIX):]
    return platform


def _connect_readonly(path: Path) -> sqlite3.Connection:
    return sqlite3.connect(
        f"file:{path}?mode=ro", uri=True, timeout=BUSY_TIMEOUT_SECONDS
    )


def _query_bridge_name(path: Path, room_id: str) -> Optional[str]:
    """Run the portal -> ghost join against one bridge DB."""
    try:
        conn = _connect_readonly(path)
    except sqlite3.Error as exc:
        raise NameLookupError(f"Cannot open bridge database {path}: {exc}", str(path)) from exc

    try:
        row = conn.execute(
            "SELECT other_user_id FROM portal "
            "WHERE mxid = ? AND other_user_id IS NOT NULL LIMIT 1",
            (room_id,),
        ).fetchone()
        if row is None:
            return None

        row = conn.execute(
            "SELECT name FROM ghost WHERE id = ? AND name != '' LIMIT 1",
            (row[0],),
        ).fetchone()
    except sqlite3.Error as exc:
        raise NameLookupError(f"Bridge lookup failed in {path}: {exc}", str(path)) from exc
    finally:
        conn.close()

    if row is None or row[0] is None:
        return None
    name = str(row[0]).strip()
    return name or None


class BridgeLookup:
    """Resolves DM room names via discovered megabridge databases.

    Results are cached per room for the lifetime of the instance,
    including misses, so each room costs at most one round of I/O.
    """

    def __init__(self, platform_dbs: dict[str, Path] | None = None):
        self._platform_dbs: dict[str, Path] = dict(platform_dbs or {})
        self._cache: dict[str, Optional[str]] = {}

    @classmethod
    def discover(cls, root: Path | str) -> "BridgeLookup":
        """Scan `root` for `local-*/megabridge.db` files.

        Raises OSError if `root` cannot be listed. Directories without a
        bridge database are skipped.
        """
        root = Path(root)
        platform_dbs: dict[str, Path] = {}
        for entry in root.iterdir():
            if not entry.name.startswith(BRIDGE_DIR_PREFIX) or not entry.is_dir():
                continue
            candidate = entry / BRIDGE_DB_NAME
            if not candidate.is_file():
                continue
            platform_dbs[normalize_platform(entry.name)] = candidate

        logger.debug(
            "Discovered %d bridge databases under %s: %s",
            len(platform_dbs), root, ", ".join(sorted(platform_dbs)),
        )
        return cls(platform_dbs)

    def lookup_dm_name(self, room_id: str, account_id: str = "") -> Optional[str]:
        """Return the remote contact's name for a DM room, or None.

        When `account_id` names a known platform only that bridge is
        queried; otherwise bridges are tried in sorted platform order and
        the first hit wins.
        """
        if not self._platform_dbs:
            return None
        if room_id in self._cache:
            return self._cache[room_id]

        candidate = self._platform_dbs.get(normalize_platform(account_id)) if account_id else None

        if candidate is not None:
            name = _query_bridge_name(candidate, room_id)
        else:
            name = None
            for platform in sorted(self._platform_dbs):
                name = _query_bridge_name(self._platform_dbs[platform], room_id)
                if name:
                    break

        self._cache[room_id] = name
        return name

    def paths(self) -> list[str]:
        """Bridge database paths, ordered by platform."""
        return [str(self._platform_dbs[p]) for p in sorted(self._platform_dbs)]

    @property
    def platforms(self) -> list[str]:
        return sorted(self._platform_dbs)
