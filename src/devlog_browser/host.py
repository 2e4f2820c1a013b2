"""Host environment collaborators: the browser's view of tabs and windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

WINDOW_ID_NONE = -1


@dataclass(frozen=True, slots=True)
class TabInfo:
    """Snapshot of a single browser tab."""

    id: int
    window_id: int = 0
    url: Optional[str] = None
    title: Optional[str] = None
    active: bool = False


class BrowserHost(Protocol):
    async def query_active_tab(self) -> Optional[TabInfo]:
        """Return the active tab of the last focused window, if any."""
        ...


class SnapshotBrowserHost:
    """In-memory model of the browser fed from notification payloads.

    Answers :meth:`query_active_tab` the way ``tabs.query({active: true,
    lastFocusedWindow: true})`` does: the last focused window is remembered
    even after every window has lost focus.
    """

    def __init__(self) -> None:
        self._tabs: dict[int, TabInfo] = {}
        self._active_by_window: dict[int, int] = {}
        self._last_focused_window: Optional[int] = None

    async def query_active_tab(self) -> Optional[TabInfo]:
        window_id = self._last_focused_window
        if window_id is None:
            return None
        tab_id = self._active_by_window.get(window_id)
        if tab_id is None:
            return None
        return self._tabs.get(tab_id)

    def upsert_tab(self, tab: TabInfo) -> None:
        previous = self._tabs.get(tab.id)
        if previous is not None and previous.window_id != tab.window_id:
            if self._active_by_window.get(previous.window_id) == tab.id:
                del self._active_by_window[previous.window_id]
        if tab.active:
            self._mark_active(tab)
        else:
            self._tabs[tab.id] = tab
            if self._active_by_window.get(tab.window_id) == tab.id:
                del self._active_by_window[tab.window_id]

    def activate_tab(self, tab: TabInfo) -> None:
        self._mark_active(replace(tab, active=True))

    def focus_window(self, window_id: int) -> None:
        if window_id == WINDOW_ID_NONE:
            return
        self._last_focused_window = window_id

    def _mark_active(self, tab: TabInfo) -> None:
        previous_id = self._active_by_window.get(tab.window_id)
        if previous_id is not None and previous_id != tab.id:
            previous = self._tabs.get(previous_id)
            if previous is not None:
                self._tabs[previous_id] = replace(previous, active=False)
        self._tabs[tab.id] = tab
        self._active_by_window[tab.window_id] = tab.id
        if self._last_focused_window is None:
            self._last_focused_window = tab.window_id
        logger.debug("Tab %s is active in window %s", tab.id, tab.window_id)
