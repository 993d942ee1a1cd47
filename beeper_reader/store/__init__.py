from beeper_reader.store.bridge import BridgeLookup
from beeper_reader.store.message_text import resolve_message_text
from beeper_reader.store.models import (
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
)
from beeper_reader.store.store import BeeperStore

__all__ = [
    "BeeperStore",
    "BridgeLookup",
    "Message",
    "MessageFormat",
    "MessageListOptions",
    "Participant",
    "SearchOptions",
    "SearchResult",
    "StoreOptions",
    "Thread",
    "ThreadLabel",
    "ThreadListOptions",
    "resolve_message_text",
]
