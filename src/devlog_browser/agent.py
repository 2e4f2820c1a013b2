"""Notification handlers that drive the span tracker."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

import httpx

from .config import KeyValueStore, PublisherSettings
from .host import WINDOW_ID_NONE, BrowserHost, TabInfo
from .models import utc_now
from .normalization import focus_target_from_tab
from .publisher import EventPublisher
from .tracker import SpanTracker

logger = logging.getLogger(__name__)

IDLE_STATE_ACTIVE = "active"


class ActiveSpanAgent:
    """Maps host notifications onto tracker transitions.

    Each handler runs its "query the host, then reconcile" step under one lock,
    so overlapping notifications are applied in arrival order and never
    interleave a close with another handler's open.
    """

    def __init__(self, host: BrowserHost, tracker: SpanTracker) -> None:
        self.host = host
        self.tracker = tracker
        self._lock = asyncio.Lock()

    async def sync(self, reason: str) -> None:
        async with self._lock:
            tab = await self.host.query_active_tab()
            logger.debug("Sync (%s): active tab %s", reason, tab.id if tab else None)
            self.tracker.reconcile(focus_target_from_tab(tab))

    async def end_span(self, reason: str) -> None:
        async with self._lock:
            self.tracker.close_current(reason=reason)

    async def on_tab_activated(self) -> None:
        await self.sync("tab-activated")

    async def on_tab_updated(self, tab: TabInfo, changed_url: Optional[str]) -> None:
        # Title-only updates leave the open span's title as it was.
        if not tab.active or not changed_url:
            return
        await self.sync("tab-updated")

    async def on_window_focus_changed(self, window_id: int) -> None:
        if window_id == WINDOW_ID_NONE:
            await self.end_span("window-blur")
            return
        await self.sync("window-focus")

    async def on_idle_state_changed(self, state: str) -> None:
        if state == IDLE_STATE_ACTIVE:
            await self.sync("idle-active")
            return
        await self.end_span("idle")

    async def on_startup(self) -> None:
        await self.sync("startup")

    async def on_installed(self) -> None:
        await self.sync("installed")


def create_agent(
    host: BrowserHost,
    store: KeyValueStore,
    *,
    settings: Optional[PublisherSettings] = None,
    clock: Callable[[], datetime] = utc_now,
    client: Optional[httpx.AsyncClient] = None,
) -> tuple[ActiveSpanAgent, EventPublisher]:
    """Wire a tracker to a publisher and return the agent with its publisher."""
    publisher = EventPublisher(store, settings=settings, client=client)
    tracker = SpanTracker(on_close=publisher.submit, clock=clock)
    return ActiveSpanAgent(host, tracker), publisher
