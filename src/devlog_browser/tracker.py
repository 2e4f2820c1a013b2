"""Active-span state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .models import FocusTarget, Span, utc_now
from .normalization import is_trackable_url

logger = logging.getLogger(__name__)

SpanCloseHandler = Callable[[Span, datetime], None]


@dataclass(slots=True)
class TrackerState:
    current_span: Optional[Span] = None


class SpanTracker:
    """Owns the single current span and hands closed spans to ``on_close``.

    Every transition is synchronous, so a call runs to completion without
    yielding to other handlers. After any call at most one span is open.
    """

    def __init__(
        self,
        on_close: SpanCloseHandler,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._on_close = on_close
        self._clock = clock
        self._state = TrackerState()

    @property
    def current_span(self) -> Optional[Span]:
        return self._state.current_span

    def reconcile(self, target: Optional[FocusTarget]) -> None:
        """Make the current span reflect ``target`` (``None`` meaning no focus)."""
        if target is None or not is_trackable_url(target.url):
            self.close_current(reason="no-active-tab")
            return

        current = self._state.current_span
        if current is not None and current.matches(target):
            return

        now = self._clock()
        self.close_current(reason="tab-change", now=now)
        self.open_from(target, now=now)

    def close_current(self, reason: str = "", now: Optional[datetime] = None) -> Optional[Span]:
        span = self._state.current_span
        if span is None:
            return None
        end_time = now or self._clock()
        self._state.current_span = None
        logger.debug("Closed span on %s (%s)", span.url, reason or "unspecified")
        self._on_close(span, end_time)
        return span

    def open_from(self, target: Optional[FocusTarget], now: Optional[datetime] = None) -> Optional[Span]:
        # Callers close the previous span first.
        if target is None or not is_trackable_url(target.url):
            return None
        span = Span(
            tab_id=target.tab_id,
            url=target.url,
            title=target.title or "",
            start_time=now or self._clock(),
        )
        self._state.current_span = span
        logger.debug("Opened span on %s in tab %s", span.url, span.tab_id)
        return span
