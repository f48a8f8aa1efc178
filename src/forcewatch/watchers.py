"""Abstract notification source protocol for file watching implementations."""

from pathlib import Path
from typing import Protocol


class SourceError(Exception):
    """A notification source command failed."""


class NotificationSource(Protocol):
    """Request/response connection to a file-change notification service.

    Shaped after the watchman protocol: every command is awaited, and
    subscription batches are pulled one at a time with ``receive``.
    All failures raise SourceError.
    """

    async def capability_check(self, required: list[str]) -> None:
        """Fail unless every capability in ``required`` is supported."""
        ...

    async def watch_project(self, path: Path) -> dict:
        """Watch ``path``; returns ``{watch, relative_path?, warning?}``."""
        ...

    async def clock(self, watch: str) -> str:
        """Current clock token for ``watch``."""
        ...

    async def subscribe(self, watch: str, name: str, query: dict) -> dict:
        """Register a subscription; returns ``{subscribe: name, ...}``."""
        ...

    async def receive(self, watch: str, name: str) -> dict:
        """Wait for the next ``subscription`` PDU for ``name`` on ``watch``."""
        ...

    def close(self) -> None:
        """Tear down the connection."""
        ...
