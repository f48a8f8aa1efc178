"""Notification source backed by a watchman service."""

import asyncio
import logging
from collections import deque
from pathlib import Path

import pywatchman

from forcewatch.watchers import NotificationSource, SourceError

logger = logging.getLogger(__name__)


class WatchmanSource(NotificationSource):
    """Watchman connection driven from asyncio.

    ``pywatchman.client`` is blocking, so every call runs in a worker
    thread. Unilateral subscription PDUs are buffered by the client while
    it reads; ``receive`` drains that buffer before reading again.
    """

    def __init__(self, sockpath: str | None = None, client: pywatchman.client | None = None):
        """Initialize source.

        Args:
            sockpath: Optional watchman socket path (resolved via
                ``watchman get-sockname`` when omitted)
            client: Pre-built client, mainly for embedding
        """
        self.sockpath = sockpath
        self._client = client
        self._pending: dict[tuple[str, str], deque] = {}

    def _get_client(self) -> pywatchman.client:
        if self._client is None:
            # no timeout: receive() blocks until the next notification
            self._client = pywatchman.client(sockpath=self.sockpath, timeout=None)
            logger.debug("Created watchman client")
        return self._client

    async def _call(self, fn_name: str, *args, **kwargs):
        client = self._get_client()
        try:
            return await asyncio.to_thread(getattr(client, fn_name), *args, **kwargs)
        except (pywatchman.WatchmanError, OSError) as e:
            raise SourceError(str(e)) from e

    async def capability_check(self, required: list[str]) -> None:
        await self._call("capabilityCheck", optional=[], required=list(required))

    async def watch_project(self, path: Path) -> dict:
        return await self._call("query", "watch-project", str(path))

    async def clock(self, watch: str) -> str:
        resp = await self._call("query", "clock", watch)
        return resp["clock"]

    async def subscribe(self, watch: str, name: str, query: dict) -> dict:
        return await self._call("query", "subscribe", watch, name, query)

    def _take_buffered(self, watch: str, name: str) -> dict | None:
        pending = self._pending.setdefault((watch, name), deque())
        if not pending:
            pending.extend(self._get_client().getSubscription(name, root=watch) or [])
        return pending.popleft() if pending else None

    async def receive(self, watch: str, name: str) -> dict:
        while True:
            pdu = self._take_buffered(watch, name)
            if pdu is not None:
                return pdu
            await self._call("receive")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Closed watchman connection")
