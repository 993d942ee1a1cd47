"""BeeperStore — read-only query layer over Beeper's index.db.

Lists threads with inbox/archive/favourite/unread labeling, lists the
messages of a thread, and runs full-text search (FTS5, falling back to a
LIKE scan when the index is unusable) with optional context windows
around each match. Everything is read through a single read-only
connection; nothing is ever written.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from beeper_reader.errors import (
    IndexUnavailableError,
    InvalidArgumentError,
    NotFoundError,
    StorageQueryError,
    StorageUnavailableError,
)
from beeper_reader.store.bridge import BridgeLookup
from beeper_reader.store.classify import (
    compute_archived,
    last_activity_ms,
    parse_marker,
    parse_tags,
    should_include_thread,
)
from beeper_reader.store.message_text import resolve_message_text
from beeper_reader.store.models import (
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_LIMIT,
    Message,
    MessageFormat,
    MessageListOptions,
    Participant,
    SearchOptions,
    SearchResult,
    StoreOptions,
    Thread,
    ThreadLabel,
    ThreadListOptions,
    datetime_to_ms,
)

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 5.0
FTS_TABLE = "mx_room_messages_fts"
UNKNOWN_DISPLAY_NAME = "(unknown)"
MAX_NAMES_IN_TITLE = 3

# SQLite caps bound parameters per statement; IN (...) lists are chunked.
_CHUNK_SIZE = 500

_FTS_ERROR_MARKERS = ("no such module: fts5", f"no such table: {FTS_TABLE}")

_VISIBLE_MESSAGE = "m.isDeleted = 0 AND m.type NOT IN ('HIDDEN','REACTION')"

_THREAD_SELECT = """
    SELECT t.threadID, t.accountID, t.timestamp,
        json_extract(t.thread,'$.title') AS title,
        json_extract(t.thread,'$.name') AS name,
        json_extract(t.thread,'$.type') AS type,
        json_extract(t.thread,'$.isUnread') AS isUnread,
        json_extract(t.thread,'$.isMarkedUnread') AS isMarkedUnread,
        json_extract(t.thread,'$.isLowPriority') AS isLowPriority,
        json_extract(t.thread,'$.unreadCount') AS unreadCount,
        json_extract(t.thread,'$.unreadMentionsCount') AS unreadMentionsCount,
        json_extract(t.thread,'$.extra.isArchivedUpto') AS isArchivedUpto,
        json_extract(t.thread,'$.extra.isArchivedUpToOrder') AS isArchivedUpToOrder,
        json_extract(t.thread,'$.extra.tags') AS tags,
        b.lastOpenTime AS lastOpenTime,
        (SELECT MAX(timestamp) FROM mx_room_messages
            WHERE roomID = t.threadID AND type NOT IN ('HIDDEN','REACTION')) AS lastMessageTime,
        (SELECT MAX(hsOrder) FROM mx_room_messages
            WHERE roomID = t.threadID AND type != 'HIDDEN') AS latestHsOrder,
        (SELECT COUNT(*) FROM mx_room_messages
            WHERE roomID = t.threadID AND type NOT IN ('HIDDEN','REACTION')) AS totalMessages
    FROM threads t
    LEFT JOIN breadcrumbs b ON t.threadID = b.id
"""

_MESSAGE_COLUMNS = """m.id, m.eventID, m.roomID, m.senderContactID, m.timestamp,
    m.isSentByMe, m.type,
    COALESCE(m.text_content, '') AS text_content,
    COALESCE(m.message, '') AS message"""


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _int(value: Any) -> int:
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def _chunks(values: List[str], size: int = _CHUNK_SIZE) -> Iterable[List[str]]:
    for i in range(0, len(values), size):
        yield values[i:i + size]


def _unique(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _days_ago_ms(days: int) -> int:
    return int((time.time() - days * 86400) * 1000)


def _is_fts_error(exc: sqlite3.Error) -> bool:
    msg = str(exc).lower()
    return any(marker in msg for marker in _FTS_ERROR_MARKERS)


def trim_context(messages: List[Message], match_id: int, context: int) -> List[Message]:
    """Keep `context` messages either side of the match, dropping the match.

    If the match is not in `messages` the list is returned unchanged.
    """
    if context <= 0 or not messages:
        return messages

    idx = next((i for i, msg in enumerate(messages) if msg.id == match_id), -1)
    if idx == -1:
        return messages

    start = max(0, idx - context)
    end = min(len(messages), idx + context + 1)
    return messages[start:idx] + messages[idx + 1:end]


class BeeperStore:
    """Read-only access to a Beeper index.db.

    The connection is opened lazily (or eagerly via `open()`), pinged once,
    and reused for every query until `close()`.
    """

    def __init__(self, db_path: Path | str, options: StoreOptions | None = None):
        self._db_path = Path(db_path)
        self._options = options or StoreOptions()
        self._conn: sqlite3.Connection | None = None
        self._bridge: BridgeLookup | None = None

        if self._options.bridge_lookup:
            root = Path(self._options.bridge_root) if self._options.bridge_root else self._db_path.parent
            try:
                self._bridge = BridgeLookup.discover(root)
            except OSError as exc:
                logger.warning("Bridge lookups disabled, cannot scan %s: %s", root, exc)

    @classmethod
    def open(cls, db_path: Path | str, options: StoreOptions | None = None) -> "BeeperStore":
        """Create a store and verify the database is reachable."""
        store = cls(db_path, options)
        store.conn  # opens and pings
        return store

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = None
            try:
                conn = sqlite3.connect(
                    f"file:{self._db_path}?mode=ro", uri=True, timeout=BUSY_TIMEOUT_SECONDS
                )
                conn.row_factory = sqlite3.Row
                conn.execute("SELECT COUNT(*) FROM sqlite_master").fetchone()
            except sqlite3.Error as exc:
                if conn is not None:
                    conn.close()
                raise StorageUnavailableError(
                    f"Cannot open Beeper database at {self._db_path}: {exc}"
                ) from exc
            self._conn = conn
        return self._conn

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "BeeperStore":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def bridge_paths(self) -> List[str]:
        """Discovered megabridge database paths (empty when lookups are off)."""
        return self._bridge.paths() if self._bridge else []

    # ══════════════════════════════════════════════════════════════
    # Query helpers
    # ══════════════════════════════════════════════════════════════

    def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        conn = self.conn
        try:
            return conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            if _is_fts_error(exc):
                raise IndexUnavailableError(str(exc)) from exc
            raise StorageQueryError(f"Query failed: {exc}") from exc

    def has_fts(self) -> bool:
        """Whether the full-text index table exists."""
        rows = self._fetchall(
            "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (FTS_TABLE,)
        )
        return bool(rows)

    # ══════════════════════════════════════════════════════════════
    # Threads
    # ══════════════════════════════════════════════════════════════

    def list_threads(self, opts: ThreadListOptions | None = None) -> List[Thread]:
        """List threads matching the options, most recently active first.

        Label filtering runs after the rows are read because archived state
        depends on untyped metadata that cannot be compared in SQL.
        """
        opts = opts or ThreadListOptions()
        limit = opts.limit if opts.limit > 0 else DEFAULT_LIMIT
        label = ThreadLabel(opts.label) if opts.label else ThreadLabel.ALL

        conds: List[str] = []
        args: List[Any] = []
        if opts.account_id:
            conds.append("t.accountID = ?")
            args.append(opts.account_id)
        if opts.days > 0:
            conds.append("t.timestamp >= ?")
            args.append(_days_ago_ms(opts.days))

        sql = _THREAD_SELECT
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        sql += (
            " ORDER BY MAX(COALESCE(lastMessageTime, 0), COALESCE(lastOpenTime, 0),"
            " COALESCE(t.timestamp, 0)) DESC LIMIT ?"
        )
        args.append(limit)

        threads = []
        for row in self._fetchall(sql, args):
            thread = self._row_to_thread(row, opts.with_stats)
            if should_include_thread(label, thread, opts.include_low_priority):
                threads.append(thread)

        participants_by_room = self._participants_by_room([t.id for t in threads])
        for thread in threads:
            participants = participants_by_room.get(thread.id, [])
            thread.display_name = self._display_name(thread, participants)
            if opts.with_participants:
                thread.participants = participants

        threads.sort(key=lambda t: t.last_activity_ms, reverse=True)
        return threads

    def get_thread(self, thread_id: str, with_stats: bool = False) -> Thread:
        """Fetch one thread with participants. Raises NotFoundError."""
        rows = self._fetchall(_THREAD_SELECT + " WHERE t.threadID = ? LIMIT 1", (thread_id,))
        if not rows:
            raise NotFoundError(f"Thread not found: {thread_id}", thread_id)

        thread = self._row_to_thread(rows[0], with_stats)
        thread.participants = self._participants_by_room([thread_id]).get(thread_id, [])
        thread.display_name = self._display_name(thread, thread.participants)
        return thread

    def _row_to_thread(self, row: sqlite3.Row, with_stats: bool) -> Thread:
        last_message = row["lastMessageTime"]
        last_open = row["lastOpenTime"]

        thread = Thread(
            id=row["threadID"],
            account_id=_text(row["accountID"]),
            title=_text(row["title"]),
            name=_text(row["name"]),
            type=_text(row["type"]),
            is_unread=bool(_int(row["isUnread"])),
            is_marked_unread=bool(_int(row["isMarkedUnread"])),
            is_low_priority=bool(_int(row["isLowPriority"])),
            unread_count=_int(row["unreadCount"]),
            unread_mentions=_int(row["unreadMentionsCount"]),
            tags=parse_tags(row["tags"]),
            last_activity_ms=last_activity_ms(last_message, last_open, _int(row["timestamp"])),
        )
        thread.is_archived = compute_archived(
            parse_marker(row["isArchivedUpto"]),
            parse_marker(row["isArchivedUpToOrder"], as_order=True),
            row["latestHsOrder"],
            last_message,
        )
        if with_stats:
            thread.last_message_ms = _int(last_message)
            thread.last_open_ms = _int(last_open)
            thread.total_messages = _int(row["totalMessages"])
        return thread

    def _participants_by_room(self, room_ids: List[str]) -> Dict[str, List[Participant]]:
        by_room: Dict[str, List[Participant]] = {}
        for chunk in _chunks(_unique(room_ids)):
            placeholders = ",".join("?" * len(chunk))
            rows = self._fetchall(
                f"""SELECT room_id, id, full_name, nickname, is_self
                    FROM participants WHERE room_id IN ({placeholders})""",
                chunk,
            )
            for row in rows:
                pid = row["id"]
                name = _text(row["full_name"]) or _text(row["nickname"]) or pid
                by_room.setdefault(row["room_id"], []).append(
                    Participant(id=pid, name=name, is_self=bool(_int(row["is_self"])))
                )
        return by_room

    def _thread_info_by_id(self, thread_ids: List[str]) -> Dict[str, Thread]:
        """Lightweight thread rows (no stats) used to name search results."""
        info: Dict[str, Thread] = {}
        for chunk in _chunks(_unique(thread_ids)):
            placeholders = ",".join("?" * len(chunk))
            rows = self._fetchall(
                f"""SELECT threadID, accountID,
                        json_extract(thread,'$.title') AS title,
                        json_extract(thread,'$.name') AS name,
                        json_extract(thread,'$.type') AS type
                    FROM threads WHERE threadID IN ({placeholders})""",
                chunk,
            )
            for row in rows:
                info[row["threadID"]] = Thread(
                    id=row["threadID"],
                    account_id=_text(row["accountID"]),
                    title=_text(row["title"]),
                    name=_text(row["name"]),
                    type=_text(row["type"]),
                )
        return info

    def _display_name(self, thread: Thread, participants: List[Participant]) -> str:
        """Pick a human name: title, name, bridge DM name, then participants."""
        if thread.title:
            return thread.title
        if thread.name:
            return thread.name

        if self._bridge is not None and thread.is_direct:
            name = self._bridge.lookup_dm_name(thread.id, thread.account_id)
            if name:
                return name

        others = [p.name for p in participants if not p.is_self]
        if not others:
            return UNKNOWN_DISPLAY_NAME
        if thread.is_direct:
            return others[0]
        if len(others) <= MAX_NAMES_IN_TITLE:
            return ", ".join(others)
        shown = ", ".join(others[:MAX_NAMES_IN_TITLE])
        return f"{shown} +{len(others) - MAX_NAMES_IN_TITLE}"

    # ══════════════════════════════════════════════════════════════
    # Messages
    # ══════════════════════════════════════════════════════════════

    def list_messages(self, opts: MessageListOptions) -> List[Message]:
        """List a thread's messages, newest first."""
        if not opts.thread_id:
            raise InvalidArgumentError("thread ID is required")

        limit = opts.limit if opts.limit > 0 else DEFAULT_LIMIT
        sql = f"""SELECT {_MESSAGE_COLUMNS}
            FROM mx_room_messages m
            WHERE m.roomID = ? AND {_VISIBLE_MESSAGE}"""
        args: List[Any] = [opts.thread_id]

        if opts.after is not None:
            sql += " AND m.timestamp >= ?"
            args.append(datetime_to_ms(opts.after))
        if opts.before is not None:
            sql += " AND m.timestamp <= ?"
            args.append(datetime_to_ms(opts.before))

        sql += " ORDER BY m.timestamp DESC, m.id DESC LIMIT ?"
        args.append(limit)

        messages = [self._row_to_message(row, opts.format) for row in self._fetchall(sql, args)]

        participants = self._participants_by_room([opts.thread_id]).get(opts.thread_id, [])
        _attach_sender_names(messages, participants)
        return messages

    @staticmethod
    def _row_to_message(row: sqlite3.Row, fmt: MessageFormat) -> Message:
        msg_type = _text(row["type"])
        return Message(
            id=row["id"],
            event_id=_text(row["eventID"]),
            thread_id=row["roomID"],
            sender_id=_text(row["senderContactID"]),
            timestamp_ms=_int(row["timestamp"]),
            is_sent_by_me=bool(_int(row["isSentByMe"])),
            type=msg_type,
            text=resolve_message_text(row["message"], msg_type, row["text_content"], fmt),
        )

    # ══════════════════════════════════════════════════════════════
    # Search
    # ══════════════════════════════════════════════════════════════

    def search_messages(self, opts: SearchOptions) -> List[SearchResult]:
        """Search message text, ranked by relevance then recency.

        Uses the FTS5 index when present. If the FTS module or table turns
        out to be unusable the same filters are re-run as a LIKE scan over
        the message payload text, with every score set to 0.
        """
        if not opts.query or not opts.query.strip():
            raise InvalidArgumentError("search query is required")

        use_fts = self.has_fts()
        sql, args = self._build_search_query(opts, use_fts)
        try:
            rows = self._fetchall(sql, args)
        except IndexUnavailableError as exc:
            if not use_fts:
                raise StorageQueryError(str(exc)) from exc
            logger.info("Full-text index unavailable (%s), falling back to LIKE search", exc)
            sql, args = self._build_search_query(opts, use_fts=False)
            rows = self._fetchall(sql, args)

        matches = []
        for row in rows:
            msg = self._row_to_message(row, opts.format)
            msg.score = float(row["rank"] or 0.0)
            matches.append(msg)

        room_ids = _unique(m.thread_id for m in matches)
        info_by_id = self._thread_info_by_id(room_ids)
        participants_by_room = self._participants_by_room(room_ids)
        thread_names: Dict[str, str] = {}
        for room_id in room_ids:
            info = info_by_id.get(room_id) or Thread(id=room_id)
            thread_names[room_id] = self._display_name(info, participants_by_room.get(room_id, []))

        for msg in matches:
            self._enrich(msg, info_by_id, participants_by_room, thread_names)

        results = []
        for match in matches:
            result = SearchResult(match=match)
            if opts.wants_context:
                result.context = self._fetch_context(
                    match, opts, info_by_id, participants_by_room, thread_names
                )
            results.append(result)
        return results

    def _build_search_query(self, opts: SearchOptions, use_fts: bool) -> Tuple[str, List[Any]]:
        if use_fts:
            sql = f"""SELECT {_MESSAGE_COLUMNS}, bm25({FTS_TABLE}) AS rank
                FROM {FTS_TABLE} f
                JOIN mx_room_messages m ON m.id = f.rowid
                WHERE f.text_content MATCH ?
                AND {_VISIBLE_MESSAGE}"""
            args: List[Any] = [opts.query]
        else:
            sql = f"""SELECT {_MESSAGE_COLUMNS}, 0 AS rank
                FROM mx_room_messages m
                WHERE json_extract(m.message,'$.text') LIKE ?
                AND {_VISIBLE_MESSAGE}"""
            args = [f"%{opts.query}%"]

        if opts.thread_id:
            sql += " AND m.roomID = ?"
            args.append(opts.thread_id)
        if opts.account_id:
            sql += " AND m.roomID IN (SELECT threadID FROM threads WHERE accountID = ?)"
            args.append(opts.account_id)
        if opts.days > 0:
            sql += " AND m.timestamp >= ?"
            args.append(_days_ago_ms(opts.days))

        sql += " ORDER BY rank ASC, m.timestamp DESC, m.id DESC LIMIT ?"
        args.append(opts.limit if opts.limit > 0 else DEFAULT_LIMIT)
        return sql, args

    def _enrich(
        self,
        msg: Message,
        info_by_id: Dict[str, Thread],
        participants_by_room: Dict[str, List[Participant]],
        thread_names: Dict[str, str],
    ):
        info = info_by_id.get(msg.thread_id)
        msg.account_id = info.account_id if info else ""
        msg.thread_name = thread_names.get(msg.thread_id, "")
        _attach_sender_names([msg], participants_by_room.get(msg.thread_id, []))

    def _fetch_context(
        self,
        match: Message,
        opts: SearchOptions,
        info_by_id: Dict[str, Thread],
        participants_by_room: Dict[str, List[Participant]],
        thread_names: Dict[str, str],
    ) -> List[Message]:
        """Messages of the match's thread within +/- window, oldest first."""
        window = opts.window or DEFAULT_CONTEXT_WINDOW
        window_ms = window // timedelta(milliseconds=1)

        rows = self._fetchall(
            f"""SELECT {_MESSAGE_COLUMNS}
                FROM mx_room_messages m
                WHERE m.roomID = ?
                AND m.timestamp BETWEEN ? AND ?
                AND {_VISIBLE_MESSAGE}
                ORDER BY m.timestamp ASC, m.id ASC""",
            (match.thread_id, match.timestamp_ms - window_ms, match.timestamp_ms + window_ms),
        )
        messages = [self._row_to_message(row, opts.format) for row in rows]
        for msg in messages:
            self._enrich(msg, info_by_id, participants_by_room, thread_names)

        if opts.context > 0:
            return trim_context(messages, match.id, opts.context)
        return messages


def _attach_sender_names(messages: List[Message], participants: List[Participant]):
    index = {p.id: p for p in participants}
    for msg in messages:
        participant = index.get(msg.sender_id)
        if participant is not None:
            msg.sender_name = participant.name
