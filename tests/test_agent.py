"""Tests for the notification handlers."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx

from devlog_browser.agent import ActiveSpanAgent, create_agent
from devlog_browser.config import MemorySettingsStore
from devlog_browser.host import WINDOW_ID_NONE, SnapshotBrowserHost, TabInfo
from devlog_browser.tracker import SpanTracker

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self):
        self.now = T0

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)

    def __call__(self):
        return self.now


class FakeHost:
    """Host whose answer can be swapped and whose query can be held open."""

    def __init__(self, tab=None):
        self.tab = tab
        self.gate = None
        self.queries = 0

    async def query_active_tab(self):
        self.queries += 1
        answer = self.tab
        if self.gate is not None:
            await self.gate.wait()
        return answer


def make_agent(host, clock=None):
    closed = []
    tracker = SpanTracker(
        on_close=lambda span, end: closed.append((span, end)),
        clock=clock or FakeClock(),
    )
    return ActiveSpanAgent(host, tracker), closed


def tab(tab_id, url, title="Title", active=True):
    return TabInfo(id=tab_id, url=url, title=title, active=active)


def test_tab_activation_opens_span():
    async def run():
        host = FakeHost(tab(1, "https://a.com"))
        agent, closed = make_agent(host)
        await agent.on_tab_activated()
        assert agent.tracker.current_span.url == "https://a.com"
        assert closed == []

    asyncio.run(run())


def test_no_active_tab_keeps_state_empty():
    async def run():
        agent, closed = make_agent(FakeHost(None))
        await agent.on_startup()
        await agent.on_installed()
        assert agent.tracker.current_span is None
        assert closed == []

    asyncio.run(run())


def test_idle_closes_with_notification_time():
    async def run():
        clock = FakeClock()
        agent, closed = make_agent(FakeHost(tab(1, "https://a.com")), clock)
        await agent.on_tab_activated()
        clock.advance(120)
        idle_at = clock.now
        await agent.on_idle_state_changed("idle")

        assert len(closed) == 1
        span, end = closed[0]
        assert span.url == "https://a.com"
        assert end == idle_at
        assert agent.tracker.current_span is None

        await agent.on_idle_state_changed("locked")
        assert len(closed) == 1

    asyncio.run(run())


def test_idle_back_to_active_resyncs():
    async def run():
        host = FakeHost(tab(1, "https://a.com"))
        agent, _ = make_agent(host)
        await agent.on_idle_state_changed("idle")
        await agent.on_idle_state_changed("active")
        assert agent.tracker.current_span.url == "https://a.com"

    asyncio.run(run())


def test_window_blur_closes_and_refocus_reopens():
    async def run():
        host = FakeHost(tab(1, "https://a.com"))
        agent, closed = make_agent(host)
        await agent.on_window_focus_changed(7)
        await agent.on_window_focus_changed(WINDOW_ID_NONE)
        assert agent.tracker.current_span is None
        assert len(closed) == 1
        await agent.on_window_focus_changed(7)
        assert agent.tracker.current_span is not None

    asyncio.run(run())


def test_tab_update_requires_active_tab_and_url_change():
    async def run():
        host = FakeHost(tab(1, "https://a.com"))
        agent, _ = make_agent(host)
        await agent.on_tab_updated(tab(2, "https://b.com", active=False), "https://b.com")
        await agent.on_tab_updated(tab(1, "https://a.com", title="New"), None)
        assert host.queries == 0

        await agent.on_tab_updated(tab(1, "https://a.com/next"), "https://a.com/next")
        assert host.queries == 1

    asyncio.run(run())


def test_title_only_update_keeps_stale_title():
    async def run():
        host = FakeHost(tab(1, "https://a.com", title="Loading"))
        agent, _ = make_agent(host)
        await agent.on_tab_activated()
        host.tab = tab(1, "https://a.com", title="Inbox (3)")
        await agent.on_tab_updated(host.tab, None)
        assert agent.tracker.current_span.title == "Loading"

    asyncio.run(run())


def test_blur_during_pending_query_wins():
    async def run():
        host = FakeHost(tab(1, "https://a.com"))
        agent, closed = make_agent(host)
        host.gate = asyncio.Event()

        sync_task = asyncio.create_task(agent.on_tab_activated())
        await asyncio.sleep(0)
        blur_task = asyncio.create_task(agent.on_window_focus_changed(WINDOW_ID_NONE))
        await asyncio.sleep(0)
        assert agent.tracker.current_span is None

        host.gate.set()
        await asyncio.gather(sync_task, blur_task)

        assert agent.tracker.current_span is None
        assert len(closed) == 1

    asyncio.run(run())


def test_overlapping_syncs_settle_on_last_answer():
    async def run():
        host = FakeHost(tab(1, "https://a.com"))
        agent, closed = make_agent(host)
        host.gate = asyncio.Event()

        first = asyncio.create_task(agent.on_tab_activated())
        await asyncio.sleep(0)
        host.tab = tab(2, "https://b.com")
        second = asyncio.create_task(agent.on_tab_activated())
        await asyncio.sleep(0)
        host.gate.set()
        await asyncio.gather(first, second)

        assert agent.tracker.current_span.url == "https://b.com"
        assert [span.url for span, _ in closed] == ["https://a.com"]

    asyncio.run(run())


def test_create_agent_publishes_closed_spans():
    async def run():
        host = SnapshotBrowserHost()
        agent, publisher = create_agent(host, MemorySettingsStore())
        seen = []

        async def fake_publish(span, end_time):
            seen.append(span.url)
            return True

        publisher.publish = fake_publish
        host.activate_tab(TabInfo(id=1, window_id=1, url="https://a.com", title="A"))
        await agent.on_tab_activated()
        await agent.end_span("shutdown")
        await publisher.aclose()
        assert seen == ["https://a.com"]

    asyncio.run(run())


def test_tab_title_is_published_verbatim():
    async def run():
        posted = []

        def handler(request):
            posted.append(json.loads(request.content))
            return httpx.Response(200, json={"status": "ok"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        host = SnapshotBrowserHost()
        agent, publisher = create_agent(host, MemorySettingsStore(), client=client)
        host.activate_tab(
            TabInfo(id=1, window_id=1, url="https://a.com", title="  Foo   -   Bar  ")
        )
        await agent.on_tab_activated()
        await agent.end_span("shutdown")
        await publisher.drain()
        await publisher.aclose()
        await client.aclose()
        assert [body["title"] for body in posted] == ["  Foo   -   Bar  "]

    asyncio.run(run())
