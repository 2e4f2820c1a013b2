"""Domain models for active browser spans and the events they produce."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

EVENT_TYPE = "browser_active_span"
EVENT_SOURCE = "chrome"
SCHEMA_VERSION = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class FocusTarget:
    """What the user is looking at right now, as reported by the host."""

    tab_id: Any
    url: str
    title: str = ""


@dataclass(frozen=True, slots=True)
class Span:
    """One continuous interval of attention on a single URL in a single tab."""

    tab_id: Any
    url: str
    title: str
    start_time: datetime

    def matches(self, target: FocusTarget) -> bool:
        return self.tab_id == target.tab_id and self.url == target.url


class ActiveSpanEvent(BaseModel):
    """Wire record describing a completed span."""

    type: str
    source: str
    event_id: str
    schema_version: int
    start_ts: str
    end_ts: str
    url: str = ""
    title: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_span(cls, span: Span, end_time: datetime) -> "ActiveSpanEvent":
        return cls(
            type=EVENT_TYPE,
            source=EVENT_SOURCE,
            event_id=str(uuid.uuid4()),
            schema_version=SCHEMA_VERSION,
            start_ts=format_timestamp(span.start_time),
            end_ts=format_timestamp(end_time),
            url=span.url,
            title=span.title or "",
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()


def span_duration_seconds(start_ts: str, end_ts: str) -> int:
    """Whole seconds between two ISO8601 timestamps, clamped at zero."""
    start = parse_timestamp(start_ts)
    end = parse_timestamp(end_ts)
    return max(int((end - start).total_seconds()), 0)


def parse_timestamp(value: str) -> datetime:
    if not value:
        raise ValueError("empty time")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp lacks a UTC offset: {value}")
    return parsed

