"""Rendering helpers: rich tables for terminals, camelCase JSON for scripts."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from beeper_reader.store import Message, Participant, SearchResult, Thread

console = Console()

TIME_LAYOUT = "%Y-%m-%d %H:%M:%S"


def format_time(ts: Optional[datetime]) -> str:
    """Local time for display, `-` when unknown."""
    if ts is None:
        return "-"
    return ts.astimezone().strftime(TIME_LAYOUT)


def safe(value: str) -> str:
    if not value or not value.strip():
        return "-"
    return value


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def _put(d: Dict[str, Any], key: str, value: Any):
    """Set `key` only when the value is non-empty (omit-if-empty)."""
    if value:
        d[key] = value


def participant_to_dict(p: Participant) -> Dict[str, Any]:
    return {"id": p.id, "name": p.name, "isSelf": p.is_self}


def thread_to_dict(thread: Thread) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": thread.id, "accountId": thread.account_id}
    _put(d, "title", thread.title)
    _put(d, "name", thread.name)
    _put(d, "type", thread.type)
    d["displayName"] = thread.display_name
    d["lastActivity"] = _iso(thread.last_activity)
    _put(d, "lastMessageTime", _iso(thread.last_message))
    _put(d, "lastOpenTime", _iso(thread.last_open))
    d["isUnread"] = thread.is_unread
    d["isMarkedUnread"] = thread.is_marked_unread
    d["isLowPriority"] = thread.is_low_priority
    d["isArchived"] = thread.is_archived
    _put(d, "unreadCount", thread.unread_count)
    _put(d, "unreadMentions", thread.unread_mentions)
    _put(d, "totalMessages", thread.total_messages)
    _put(d, "tags", list(thread.tags))
    _put(d, "participants", [participant_to_dict(p) for p in thread.participants])
    return d


def message_to_dict(msg: Message) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "id": msg.id,
        "eventId": msg.event_id,
        "threadId": msg.thread_id,
    }
    _put(d, "threadName", msg.thread_name)
    _put(d, "accountId", msg.account_id)
    d["senderId"] = msg.sender_id
    _put(d, "senderName", msg.sender_name)
    d["timestamp"] = _iso(msg.timestamp)
    d["isSentByMe"] = msg.is_sent_by_me
    d["type"] = msg.type
    d["text"] = msg.text
    _put(d, "score", msg.score)
    return d


def search_result_to_dict(result: SearchResult) -> Dict[str, Any]:
    d: Dict[str, Any] = {"match": message_to_dict(result.match)}
    _put(d, "context", [message_to_dict(m) for m in result.context])
    return d


def write_json(value: Any):
    """Print indented JSON to stdout, bypassing rich markup."""
    click.echo(json.dumps(value, indent=2, ensure_ascii=False))


def _cell(value: str) -> Text:
    # message text such as "[Image]" must not be read as rich markup
    return Text(value)


def threads_table(threads: List[Thread]) -> Table:
    table = Table(box=None, header_style="bold")
    table.add_column("TIME", style="dim", no_wrap=True)
    table.add_column("ACCOUNT", style="cyan")
    table.add_column("THREAD")
    table.add_column("THREAD_ID", style="dim")
    for thread in threads:
        table.add_row(
            format_time(thread.last_activity),
            safe(thread.account_id),
            _cell(safe(thread.display_name)),
            thread.id,
        )
    return table


def messages_table(messages: List[Message]) -> Table:
    table = Table(box=None, header_style="bold")
    table.add_column("TIME", style="dim", no_wrap=True)
    table.add_column("SENDER", style="cyan")
    table.add_column("TEXT", overflow="fold")
    for msg in messages:
        table.add_row(format_time(msg.timestamp), _cell(msg.sender_label), _cell(msg.text))
    return table


def search_table(results: List[SearchResult], show_context: bool) -> Table:
    table = Table(box=None, header_style="bold")
    table.add_column("TIME", style="dim", no_wrap=True)
    table.add_column("ACCOUNT", style="cyan")
    table.add_column("THREAD")
    table.add_column("SENDER", style="cyan")
    table.add_column("TEXT", overflow="fold")
    table.add_column("SCORE", justify="right")
    for result in results:
        match = result.match
        table.add_row(
            format_time(match.timestamp),
            safe(match.account_id),
            _cell(safe(match.thread_name)),
            _cell(match.sender_label),
            _cell(match.text),
            f"{match.score:.2f}",
        )
        if show_context:
            for ctx_msg in result.context:
                table.add_row(
                    f"  {format_time(ctx_msg.timestamp)}",
                    safe(ctx_msg.account_id),
                    _cell(safe(ctx_msg.thread_name)),
                    _cell(ctx_msg.sender_label),
                    _cell(ctx_msg.text),
                    "",
                    style="dim",
                )
    return table
