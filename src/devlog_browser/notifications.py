"""Notification feed: parse host notifications and replay them through an agent."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Iterable, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .agent import ActiveSpanAgent, create_agent
from .config import KeyValueStore, PublisherSettings
from .host import SnapshotBrowserHost, TabInfo
from .models import utc_now

logger = logging.getLogger(__name__)


class NotificationParseError(ValueError):
    """A feed line could not be parsed as a notification."""

    def __init__(self, line_number: int, message: str) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


class TabPayload(BaseModel):
    id: int
    window_id: int = 0
    url: Optional[str] = None
    title: Optional[str] = None
    active: bool = False

    def to_tab(self) -> TabInfo:
        return TabInfo(
            id=self.id,
            window_id=self.window_id,
            url=self.url,
            title=self.title,
            active=self.active,
        )


class ChangeInfo(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None


class _Notification(BaseModel):
    at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


class TabActivated(_Notification):
    kind: Literal["tab_activated"]
    tab: TabPayload


class TabUpdated(_Notification):
    kind: Literal["tab_updated"]
    tab: TabPayload
    change: ChangeInfo = Field(default_factory=ChangeInfo)


class WindowFocusChanged(_Notification):
    kind: Literal["window_focus_changed"]
    window_id: int


class IdleStateChanged(_Notification):
    kind: Literal["idle_state_changed"]
    state: Literal["active", "idle", "locked"]


class Startup(_Notification):
    kind: Literal["startup"]


class Installed(_Notification):
    kind: Literal["installed"]


Notification = Annotated[
    Union[TabActivated, TabUpdated, WindowFocusChanged, IdleStateChanged, Startup, Installed],
    Field(discriminator="kind"),
]

_ADAPTER: TypeAdapter[Notification] = TypeAdapter(Notification)


def parse_notification(raw: str, line_number: int = 1) -> Notification:
    try:
        return _ADAPTER.validate_json(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise NotificationParseError(line_number, f"{location}: {first['msg']}") from exc


def iter_notifications(lines: Iterable[str]) -> Iterable[Notification]:
    for number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        yield parse_notification(text, number)


class ReplayClock:
    """Clock that reports the timestamp of the notification being replayed."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start

    def advance(self, value: Optional[datetime]) -> None:
        self._now = value

    def __call__(self) -> datetime:
        return self._now or utc_now()


async def dispatch(agent: ActiveSpanAgent, host: SnapshotBrowserHost, notification: Notification) -> None:
    """Apply ``notification`` to the host model, then to the agent."""
    if isinstance(notification, TabActivated):
        host.activate_tab(notification.tab.to_tab())
        await agent.on_tab_activated()
    elif isinstance(notification, TabUpdated):
        tab = notification.tab.to_tab()
        host.upsert_tab(tab)
        await agent.on_tab_updated(tab, notification.change.url)
    elif isinstance(notification, WindowFocusChanged):
        host.focus_window(notification.window_id)
        await agent.on_window_focus_changed(notification.window_id)
    elif isinstance(notification, IdleStateChanged):
        await agent.on_idle_state_changed(notification.state)
    elif isinstance(notification, Startup):
        await agent.on_startup()
    elif isinstance(notification, Installed):
        await agent.on_installed()


async def replay_notifications(
    lines: Iterable[str],
    store: KeyValueStore,
    *,
    settings: Optional[PublisherSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Replay a JSON-lines feed and wait for deliveries. Returns the count."""
    host = SnapshotBrowserHost()
    clock = ReplayClock()
    agent, publisher = create_agent(
        host, store, settings=settings, clock=clock, client=client
    )
    count = 0
    try:
        for notification in iter_notifications(lines):
            clock.advance(notification.at)
            await dispatch(agent, host, notification)
            count += 1
    finally:
        await publisher.aclose()
    logger.info("Replayed %d notifications", count)
    return count
