"""Message text rendering.

Beeper stores each message as a JSON payload plus an optional
pre-rendered `text_content` column. Plain mode returns only real text;
rich mode swaps attachments and other non-text messages for bracketed
placeholders such as `[Image] caption` or `[File: report.pdf - url]`.
"""

from __future__ import annotations

import json
from typing import Any

from beeper_reader.store.models import MessageFormat


def resolve_message_text(
    raw_message: str,
    msg_type: str,
    text_content: str,
    fmt: MessageFormat = MessageFormat.RICH,
) -> str:
    """Produce the display string for a message in the requested format."""
    if fmt == MessageFormat.PLAIN:
        if text_content and text_content.strip():
            return text_content
        return _extract_message_text(raw_message, msg_type, rich=False)

    rich = _extract_message_text(raw_message, msg_type, rich=True)
    if rich.strip():
        return rich
    return text_content or ""


def _extract_message_text(raw_message: str, msg_type: str, rich: bool) -> str:
    if not raw_message or not raw_message.strip():
        return ""

    upper_type = (msg_type or "").strip().upper() or "TEXT"

    try:
        payload = json.loads(raw_message)
    except (json.JSONDecodeError, TypeError):
        return _fallback_text(raw_message, upper_type, rich)

    if isinstance(payload, dict):
        return _render_payload(payload, upper_type, rich)
    if isinstance(payload, str):
        if upper_type == "TEXT":
            return payload
        return _fallback_text(payload, upper_type, rich)
    return _fallback_text(raw_message, upper_type, rich)


def _render_payload(payload: dict[str, Any], msg_type: str, rich: bool) -> str:
    text = _first_string(payload, "body", "text")
    if not rich or msg_type == "TEXT":
        return text

    if msg_type == "IMAGE":
        return _with_optional_text("[Image]", text)
    if msg_type == "VIDEO":
        return _with_optional_text("[Video]", text)
    if msg_type == "AUDIO":
        url = _first_string(payload, "url")
        return f"[Audio: {url}]" if url else "[Audio message]"
    if msg_type == "FILE":
        filename = _first_string(payload, "filename", "name")
        url = _first_string(payload, "url")
        if filename and url:
            return f"[File: {filename} - {url}]"
        if filename or url:
            return f"[File: {filename or url}]"
        return "[File]"
    if msg_type == "LOCATION":
        geo = _first_string(payload, "geo_uri", "geoUri")
        return f"[Location: {geo}]" if geo else "[Location]"
    if msg_type == "CONTACT":
        name = _first_string(payload, "display_name", "displayName", "name")
        return f"[Contact: {name}]" if name else "[Contact]"
    if msg_type == "STICKER":
        url = _first_string(payload, "url")
        return f"[Sticker: {url}]" if url else "[Sticker]"

    return _fallback_text(text, msg_type, rich)


def _fallback_text(value: str, msg_type: str, rich: bool) -> str:
    if msg_type == "TEXT" or not rich:
        return value
    if value.strip() and msg_type:
        return _with_optional_text(f"[{msg_type}]", value)
    return f"[{msg_type or 'MESSAGE'}]"


def _with_optional_text(prefix: str, text: str) -> str:
    text = text.strip()
    return f"{prefix} {text}" if text else prefix


def _first_string(payload: dict[str, Any], *keys: str) -> str:
    """Return the first key whose value is a string, trimmed.

    A present key with a string value stops the search even when blank.
    """
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str):
            return value.strip()
    return ""
