"""Core dataclasses returned by the store.

Timestamps are kept as integer milliseconds (the unit stored in index.db)
so window arithmetic stays exact; datetime accessors are provided for
display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

DEFAULT_LIMIT = 50
DEFAULT_CONTEXT_WINDOW = timedelta(hours=1)


class MessageFormat(str, Enum):
    """How message text is rendered."""

    PLAIN = "plain"
    RICH = "rich"


class ThreadLabel(str, Enum):
    """Thread list filter."""

    ALL = "all"
    INBOX = "inbox"
    ARCHIVE = "archive"
    FAVOURITE = "favourite"
    UNREAD = "unread"


def ms_to_datetime(ms: Optional[int]) -> Optional[datetime]:
    """Convert epoch milliseconds to an aware UTC datetime (None for 0/None)."""
    if not ms:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def datetime_to_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are local time)."""
    return int(round(value.timestamp() * 1000))


@dataclass
class Participant:
    """A member of a thread."""

    id: str
    name: str
    is_self: bool = False


@dataclass
class Thread:
    """A conversation with its derived labeling state."""

    id: str
    account_id: str = ""
    title: str = ""
    name: str = ""
    type: str = ""
    display_name: str = ""
    last_activity_ms: int = 0
    last_message_ms: int = 0
    last_open_ms: int = 0
    is_unread: bool = False
    is_marked_unread: bool = False
    is_low_priority: bool = False
    is_archived: bool = False
    unread_count: int = 0
    unread_mentions: int = 0
    total_messages: int = 0
    tags: List[str] = field(default_factory=list)
    participants: List[Participant] = field(default_factory=list)

    @property
    def last_activity(self) -> Optional[datetime]:
        return ms_to_datetime(self.last_activity_ms)

    @property
    def last_message(self) -> Optional[datetime]:
        return ms_to_datetime(self.last_message_ms)

    @property
    def last_open(self) -> Optional[datetime]:
        return ms_to_datetime(self.last_open_ms)

    @property
    def is_direct(self) -> bool:
        return self.type in ("single", "dm")


@dataclass
class Message:
    """A message row with rendered text and optional enrichment."""

    id: int
    event_id: str
    thread_id: str
    sender_id: str
    timestamp_ms: int
    type: str = ""
    text: str = ""
    is_sent_by_me: bool = False
    thread_name: str = ""
    account_id: str = ""
    sender_name: str = ""
    score: float = 0.0

    @property
    def timestamp(self) -> Optional[datetime]:
        return ms_to_datetime(self.timestamp_ms)

    @property
    def sender_label(self) -> str:
        return self.sender_name or self.sender_id


@dataclass
class SearchResult:
    """A search match plus its surrounding messages (oldest first)."""

    match: Message
    context: List[Message] = field(default_factory=list)


@dataclass
class StoreOptions:
    bridge_lookup: bool = True
    bridge_root: Optional[str] = None


@dataclass
class ThreadListOptions:
    days: int = 0
    limit: int = DEFAULT_LIMIT
    account_id: str = ""
    label: ThreadLabel = ThreadLabel.ALL
    include_low_priority: bool = False
    with_participants: bool = False
    with_stats: bool = False


@dataclass
class MessageListOptions:
    thread_id: str = ""
    limit: int = DEFAULT_LIMIT
    after: Optional[datetime] = None
    before: Optional[datetime] = None
    format: MessageFormat = MessageFormat.RICH


@dataclass
class SearchOptions:
    """Full-text search parameters.

    `context` trims the window to N messages on each side of the match;
    `window` sets the half-width of the time window (default one hour
    when only `context` is given).
    """

    query: str = ""
    thread_id: str = ""
    days: int = 0
    limit: int = DEFAULT_LIMIT
    account_id: str = ""
    context: int = 0
    window: Optional[timedelta] = None
    format: MessageFormat = MessageFormat.RICH

    @property
    def wants_context(self) -> bool:
        return self.context > 0 or bool(self.window)
