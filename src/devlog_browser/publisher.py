"""Best-effort delivery of closed spans to the configured sink."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

import httpx

from .config import KeyValueStore, PublisherSettings, resolve_endpoint
from .models import ActiveSpanEvent, Span

logger = logging.getLogger(__name__)


def build_event(span: Span, end_time: datetime) -> ActiveSpanEvent:
    return ActiveSpanEvent.from_span(span, end_time)


class EventPublisher:
    """Posts one event per closed span, never retrying and never raising.

    Delivery is bounded by ``settings.timeout``. A timeout, a transport error
    or a non-2xx reply abandons the attempt; :meth:`publish` reports whether
    the sink accepted the event, and callers are expected to ignore it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[PublisherSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._store = store
        self.settings = settings or PublisherSettings()
        self._client = client
        self._owns_client = client is None
        self._pending: set[asyncio.Task[bool]] = set()

    async def publish(self, span: Span, end_time: datetime) -> bool:
        event = build_event(span, end_time)
        endpoint = resolve_endpoint(self._store, self.settings.default_endpoint)
        timeout = self.settings.timeout.total_seconds()
        try:
            await asyncio.wait_for(self._post(endpoint, event, timeout), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("Dropped event %s: %s did not answer within %.1fs", event.event_id, endpoint, timeout)
            return False
        except httpx.HTTPError as exc:
            logger.debug("Dropped event %s: %s", event.event_id, exc)
            return False
        logger.debug("Delivered event %s for %s", event.event_id, event.url)
        return True

    def submit(self, span: Span, end_time: datetime) -> None:
        """Schedule :meth:`publish` without waiting for it."""
        task = asyncio.get_running_loop().create_task(self._publish_quietly(span, end_time))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled deliveries; each is already time-bounded."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post(self, endpoint: str, event: ActiveSpanEvent, timeout: float) -> None:
        client = self._get_client(timeout)
        response = await client.post(
            endpoint,
            json=event.to_payload(),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()

    async def _publish_quietly(self, span: Span, end_time: datetime) -> bool:
        try:
            return await self.publish(span, end_time)
        except Exception:
            logger.exception("Unexpected failure while publishing span for %s", span.url)
            return False

    def _get_client(self, timeout: float) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client
