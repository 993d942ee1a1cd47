"""Thread classification: archived state and label membership.

Beeper records "archived up to" in a thread's `extra` metadata, but the
value is untyped: a millisecond timestamp, an hsOrder sequence number, a
`ts`-prefixed string, or just a truthy flag. Markers are parsed once into
an ArchiveMarker and compared against the thread's latest message
timestamp or latest hsOrder.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from beeper_reader.store.models import Thread, ThreadLabel

logger = logging.getLogger(__name__)

# Values above this are epoch milliseconds (13 digits); below, hsOrder values.
TIMESTAMP_THRESHOLD = 1_000_000_000_000

FAVOURITE_TAG = "favourite"

_NUMERIC_PREFIX_RE = re.compile(r"^[^\d+\-.]+")


class MarkerKind(str, Enum):
    TIMESTAMP = "timestamp"
    ORDER = "order"
    PRESENT = "present"


@dataclass(frozen=True)
class ArchiveMarker:
    """A parsed archived-through marker.

    `value` is None only for PRESENT markers (non-blank but unparsable).
    """

    kind: MarkerKind
    value: Optional[int] = None


def _parse_number(raw: str) -> Optional[int]:
    raw = _NUMERIC_PREFIX_RE.sub("", raw)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        parsed = float(raw)
    except ValueError:
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return int(parsed)


def parse_marker(raw: Any, as_order: bool = False) -> Optional[ArchiveMarker]:
    """Resolve a raw archived-through value into an ArchiveMarker.

    Args:
        raw: The value as returned by json_extract (str, int, float or None).
        as_order: Treat any numeric value as an hsOrder marker, regardless
                  of magnitude (used for `isArchivedUpToOrder`).

    Returns None when the value is absent or blank.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None

    value = _parse_number(text)
    if value is None:
        return ArchiveMarker(MarkerKind.PRESENT)
    if not as_order and value > TIMESTAMP_THRESHOLD:
        return ArchiveMarker(MarkerKind.TIMESTAMP, value)
    return ArchiveMarker(MarkerKind.ORDER, value)


def compute_archived(
    upto: Optional[ArchiveMarker],
    upto_order: Optional[ArchiveMarker],
    latest_order: Optional[int],
    last_message_ms: Optional[int],
) -> bool:
    """Decide whether a thread is archived.

    Rules, first match wins:
      1. an hsOrder marker plus a known latest hsOrder: latest <= marker
      2. a timestamp marker: last message <= marker (unknown -> archived);
         an order-valued marker: latest hsOrder <= marker (unknown -> archived)
      3. otherwise archived iff the marker is present at all
    """
    if upto_order is not None and upto_order.value is not None and latest_order is not None:
        return latest_order <= upto_order.value

    if upto is not None and upto.value is not None:
        if upto.kind == MarkerKind.TIMESTAMP:
            if last_message_ms is None:
                return True
            return last_message_ms <= upto.value
        if latest_order is None:
            return True
        return latest_order <= upto.value

    return upto is not None


def has_tag(tags: List[str], target: str) -> bool:
    return any(tag.lower() == target.lower() for tag in tags)


def should_include_thread(
    label: ThreadLabel,
    thread: Thread,
    include_low_priority: bool = False,
) -> bool:
    """Return True if the thread belongs under the requested label."""
    if thread.is_low_priority and not include_low_priority:
        return False

    favourite = has_tag(thread.tags, FAVOURITE_TAG)

    if label == ThreadLabel.INBOX:
        return favourite or not thread.is_archived
    if label == ThreadLabel.ARCHIVE:
        return thread.is_archived and not favourite
    if label == ThreadLabel.FAVOURITE:
        return favourite
    if label == ThreadLabel.UNREAD:
        return thread.is_unread or thread.is_marked_unread
    return True


def parse_tags(raw: Any) -> List[str]:
    """Parse the `extra.tags` JSON array; tolerate junk that mentions favourite."""
    if raw is None:
        return []
    text = str(raw).strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, list):
        return [tag for tag in parsed if isinstance(tag, str)]
    if FAVOURITE_TAG in text.lower():
        return [FAVOURITE_TAG]
    logger.debug("Ignoring unrecognised tags value: %r", text)
    return []


def last_activity_ms(*timestamps: Optional[int]) -> int:
    """Latest of the given millisecond timestamps; zero/None never wins."""
    return max((ts for ts in timestamps if ts), default=0)
