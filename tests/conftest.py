"""Pytest fixtures for beeper-reader tests.

Builds small Beeper-shaped SQLite databases on disk: an index.db with four
threads covering the inbox/archive/favourite/unread cases, optionally with
an FTS5 table, and a bridge root holding one megabridge.db.
"""

import sqlite3
from pathlib import Path
from typing import Any, Iterable

import pytest

ROOM1 = "!room1:beeper.local"
ROOM2 = "!room2:beeper.local"
ROOM3 = "!room3:beeper.local"
ROOM4 = "!room4:beeper.local"

SCHEMA = [
    "CREATE TABLE threads (threadID TEXT PRIMARY KEY, accountID TEXT, "
    "thread JSON NOT NULL, timestamp INTEGER DEFAULT 0)",
    "CREATE TABLE breadcrumbs (id TEXT PRIMARY KEY, lastOpenTime INTEGER)",
    "CREATE TABLE participants (account_id TEXT NOT NULL, room_id TEXT NOT NULL, "
    "id TEXT NOT NULL, full_name TEXT, nickname TEXT, is_self INTEGER)",
    """CREATE TABLE mx_room_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        roomID TEXT NOT NULL,
        eventID TEXT NOT NULL,
        senderContactID TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        isDeleted INTEGER NOT NULL DEFAULT 0,
        type TEXT NOT NULL,
        hsOrder INTEGER NOT NULL,
        isSentByMe INTEGER NOT NULL,
        message JSON,
        text_content TEXT
    )""",
]

THREADS = [
    (ROOM1, "whatsapp",
     '{"title":"Team Chat","type":"group","isUnread":1,"isMarkedUnread":0,'
     '"isLowPriority":0,"unreadCount":2,"unreadMentionsCount":1}',
     1700000000000),
    (ROOM2, "telegram",
     '{"title":"Archived","type":"group","isUnread":0,"isMarkedUnread":0,'
     '"isLowPriority":0,"extra":{"isArchivedUpto":5}}',
     1700000001000),
    (ROOM3, "signal",
     '{"title":"Fav","type":"group","isUnread":0,"isMarkedUnread":0,'
     '"isLowPriority":1,"extra":{"isArchivedUpto":5,"tags":["favourite"]}}',
     1700000002000),
    (ROOM4, "whatsapp", '{"type":"single"}', 1700000003000),
]

# (id, room, event, sender, ts, type, hsOrder, isSentByMe, message, text_content)
MESSAGES = [
    (1, ROOM1, "$evt1", "@alice:beeper.local", 1700000000100, "TEXT", 6, 0, '{"text":"hello"}', "hello"),
    (2, ROOM1, "$evt2", "@alice:beeper.local", 1700000000200, "TEXT", 7, 0,
     '{"text":"christmas party"}', "christmas party"),
    (3, ROOM1, "$evt3", "@alice:beeper.local", 1700000000300, "TEXT", 8, 0, '{"text":"see you"}', "see you"),
    (4, ROOM2, "$evt4", "@bob:beeper.local", 1700000000400, "TEXT", 5, 0, '{"text":"archived"}', "archived"),
    (5, ROOM3, "$evt5", "@eve:beeper.local", 1700000000500, "TEXT", 5, 0, '{"text":"fav"}', "fav"),
    (6, ROOM4, "$evt6", "@bridge:beeper.local", 1700000000600, "TEXT", 1, 0, '{"text":"dm"}', "dm"),
    (7, ROOM1, "$evt7", "@alice:beeper.local", 1700000000700, "TEXT", 9, 0,
     '{"text":"invoice due"}', "invoice due"),
]


def execute(db_path: Path, sql: str, params: Iterable[Any] = ()) -> None:
    """Run one write statement against a fixture database."""
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(sql, tuple(params))
        conn.commit()
    finally:
        conn.close()


def create_index_db(path: Path, with_fts: bool = False) -> Path:
    conn = sqlite3.connect(path)
    try:
        for stmt in SCHEMA:
            conn.execute(stmt)

        if with_fts:
            try:
                conn.execute("CREATE VIRTUAL TABLE mx_room_messages_fts USING fts5(text_content)")
            except sqlite3.OperationalError as exc:
                pytest.skip(f"fts5 not available: {exc}")

        conn.executemany(
            "INSERT INTO threads (threadID, accountID, thread, timestamp) VALUES (?, ?, ?, ?)",
            THREADS,
        )
        conn.execute(
            "INSERT INTO breadcrumbs (id, lastOpenTime) VALUES (?, ?)", (ROOM1, 1700000000500)
        )
        conn.execute(
            "INSERT INTO participants (account_id, room_id, id, full_name, nickname, is_self) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            ("whatsapp", ROOM1, "@alice:beeper.local", "Alice", "", 0),
        )
        for row in MESSAGES:
            conn.execute(
                "INSERT INTO mx_room_messages (id, roomID, eventID, senderContactID, timestamp, "
                "isDeleted, type, hsOrder, isSentByMe, message, text_content) "
                "VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?)",
                row,
            )
            if with_fts:
                conn.execute(
                    "INSERT INTO mx_room_messages_fts (rowid, text_content) VALUES (?, ?)",
                    (row[0], row[-1]),
                )
        conn.commit()
    finally:
        conn.close()
    return path


def create_bridge_db(path: Path, rows: Iterable[tuple[str, str, str]]) -> Path:
    """Write a megabridge.db with (room, remote user, name) rows."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE portal (mxid TEXT, other_user_id TEXT)")
        conn.execute("CREATE TABLE ghost (id TEXT, name TEXT)")
        for room_id, user_id, name in rows:
            conn.execute("INSERT INTO portal (mxid, other_user_id) VALUES (?, ?)", (room_id, user_id))
            conn.execute("INSERT INTO ghost (id, name) VALUES (?, ?)", (user_id, name))
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def index_db(tmp_path: Path) -> Path:
    """index.db without a full-text index."""
    return create_index_db(tmp_path / "index.db")


@pytest.fixture
def fts_index_db(tmp_path: Path) -> Path:
    """index.db with a populated FTS5 table (skips if fts5 is unavailable)."""
    return create_index_db(tmp_path / "index.db", with_fts=True)


@pytest.fixture
def bridge_root(tmp_path: Path) -> Path:
    """A directory holding local-whatsapp/megabridge.db that names room4."""
    root = tmp_path / "bridges"
    create_bridge_db(
        root / "local-whatsapp" / "megabridge.db",
        [(ROOM4, "user-1", "Bridge Name")],
    )
    return root
