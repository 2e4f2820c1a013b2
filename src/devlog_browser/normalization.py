"""Utilities to turn host tab snapshots into focus targets."""

from __future__ import annotations

from typing import Optional

from .host import TabInfo
from .models import FocusTarget

_TRACKABLE_PREFIXES = ("http://", "https://")


def is_trackable_url(url: Optional[str]) -> bool:
    """Only plain web pages count; browser-internal and file pages never do."""
    if not url:
        return False
    return url.startswith(_TRACKABLE_PREFIXES)


def focus_target_from_tab(tab: Optional[TabInfo]) -> Optional[FocusTarget]:
    """Map the active tab to a trackable focus target, or ``None``."""
    if tab is None or not is_trackable_url(tab.url):
        return None
    return FocusTarget(tab_id=tab.id, url=tab.url or "", title=tab.title or "")


def summary_label(title: str, url: str) -> str:
    """Key used to bucket stored spans: the title, or the URL when it is blank."""
    label = title.strip()
    return label or url
