"""Normalization and validation of inbound fields.

Pure functions only. Everything here runs before a store is touched, so a
rejected call never leaves a partial write behind.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

import nh3

from agentboard.exceptions import ValidationError
from agentboard.models.task import TaskStatus
from agentboard.settings import settings

# User-generated-content allow-list: formatting survives, scripts and handlers do not.
NOTE_TAGS = {
    "a", "b", "blockquote", "br", "code", "del", "em", "h1", "h2", "h3", "h4",
    "h5", "h6", "hr", "i", "li", "ol", "p", "pre", "s", "strong", "sub", "sup",
    "table", "tbody", "td", "th", "thead", "tr", "ul",
}
NOTE_ATTRIBUTES = {"a": {"href", "title"}, "code": {"class"}}
NOTE_URL_SCHEMES = {"http", "https", "mailto"}


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


def require_text(value: str | None, field: str) -> str:
    """Return ``value`` stripped, or raise if it is missing or blank."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required and must be a non-empty string", field=field)
    return value.strip()


def validate_status(value: str | TaskStatus) -> TaskStatus:
    """Map a raw status string onto the closed status set."""
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(
            f"invalid status {value!r}; expected one of: {allowed}", field="status", value=str(value)
        ) from None


def sanitize_prompt_notes(notes: str | None, max_length: int | None = None) -> str:
    """Validate note length and strip unsafe markup.

    The length limit applies to the raw input. Markdown passes through
    untouched; HTML is reduced to the allow-list above.
    """
    limit = max_length or settings.max_prompt_notes_length
    text = require_text(notes, "promptNotes")
    if len(text) > limit:
        raise ValidationError(
            f"prompt notes exceed maximum length of {limit} characters",
            field="promptNotes",
            length=len(text),
        )
    cleaned = nh3.clean(
        text,
        tags=NOTE_TAGS,
        attributes=NOTE_ATTRIBUTES,
        url_schemes=NOTE_URL_SCHEMES,
        link_rel="noopener noreferrer",
    )
    if not cleaned.strip():
        raise ValidationError("prompt notes are empty once unsafe markup is removed", field="promptNotes")
    return cleaned.strip()


def normalize_limit(limit: int | None, default: int, maximum: int) -> int:
    """Clamp a caller-supplied result limit into ``[1, maximum]``."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


def normalize_files(files: Iterable[str] | None) -> list[str]:
    """Drop blanks and duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for path in files or ():
        path = path.strip()
        if path:
            seen.setdefault(path, None)
    return list(seen)


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
