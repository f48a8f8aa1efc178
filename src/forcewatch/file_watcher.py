"""In-process notification source using watchdog, for hosts without watchman."""

import asyncio
import fnmatch
import logging
import os
import posixpath
import threading
from pathlib import Path
from threading import Timer

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from forcewatch.watchers import NotificationSource, SourceError

logger = logging.getLogger(__name__)

CAPABILITIES = frozenset({"relative_root", "term-match", "term-anyof", "term-allof", "term-not"})

_CHANGE_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED, EVENT_TYPE_MOVED}


def validate_expression(expression: list) -> None:
    """Raise SourceError for expression terms this source cannot evaluate."""
    if not expression or not isinstance(expression, list):
        raise SourceError(f"Invalid expression: {expression!r}")
    op = expression[0]
    if op in ("anyof", "allof"):
        for term in expression[1:]:
            validate_expression(term)
    elif op == "not":
        if len(expression) != 2:
            raise SourceError("'not' takes exactly one term")
        validate_expression(expression[1])
    elif op == "match":
        if len(expression) < 2 or not isinstance(expression[1], str):
            raise SourceError("'match' requires a pattern")
        if len(expression) > 2 and expression[2] not in ("basename", "wholename"):
            raise SourceError(f"Unsupported match scope: {expression[2]}")
    elif op not in ("true", "false"):
        raise SourceError(f"Unsupported expression term: {op}")


def matches_expression(expression: list, name: str) -> bool:
    """Evaluate a watchman-style expression against a relative file name.

    ``match`` is case-sensitive and compares the basename unless the
    ``wholename`` scope is given.
    """
    op = expression[0]
    if op == "anyof":
        return any(matches_expression(term, name) for term in expression[1:])
    if op == "allof":
        return all(matches_expression(term, name) for term in expression[1:])
    if op == "not":
        return not matches_expression(expression[1], name)
    if op == "true":
        return True
    if op == "false":
        return False
    # match
    scope = expression[2] if len(expression) > 2 else "basename"
    target = name if scope == "wholename" else posixpath.basename(name)
    return fnmatch.fnmatchcase(target, expression[1])


class _SubscriptionHandler(FileSystemEventHandler):
    """Collects matching changes and settles them into one batch."""

    def __init__(
        self,
        source: "WatchdogSource",
        name: str,
        watch: str,
        root: Path,
        expression: list,
        queue: asyncio.Queue,
        loop: asyncio.AbstractEventLoop,
        settle_ms: int,
    ):
        """Initialize handler.

        Args:
            source: Owning source (supplies clock ticks)
            name: Subscription label
            watch: Watch root reported in each batch
            root: Directory file names are made relative to
            expression: Match expression
            queue: Queue batches are delivered to, owned by ``loop``
            loop: Event loop for delivery
            settle_ms: Quiet period before a batch is emitted
        """
        self.source = source
        self.name = name
        self.watch = watch
        self.root = root
        self.expression = expression
        self.queue = queue
        self.loop = loop
        self.settle_ms = settle_ms
        self._pending: dict[str, None] = {}
        self._lock = threading.Lock()
        self._timer: Timer | None = None

    def _relative_name(self, path: str | bytes) -> str | None:
        try:
            return Path(os.fsdecode(path)).relative_to(self.root).as_posix()
        except ValueError:
            return None

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENTS:
            return

        paths = [event.src_path]
        if event.event_type == EVENT_TYPE_MOVED:
            paths.append(event.dest_path)

        with self._lock:
            for path in paths:
                rel = self._relative_name(path)
                if rel and matches_expression(self.expression, rel):
                    logger.debug(f"File change detected: {rel}")
                    self._pending[rel] = None
            if self._pending:
                self._schedule_flush()

    def _schedule_flush(self) -> None:
        """Restart the settle timer. Caller holds the lock."""
        if self._timer:
            self._timer.cancel()
        self._timer = Timer(self.settle_ms / 1000.0, self._flush)
        self._timer.daemon = True
        self._timer.start()

    def _flush(self) -> None:
        with self._lock:
            names = list(self._pending)
            self._pending.clear()
            self._timer = None
        if not names:
            return

        pdu = {
            "subscription": self.name,
            "root": self.watch,
            "clock": self.source._next_clock(),
            "files": [self._record(n) for n in names],
        }
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, pdu)
        except RuntimeError as e:
            # loop already closed during shutdown
            logger.debug(f"Dropped batch for '{self.name}': {e}")

    def _record(self, name: str) -> dict:
        path = self.root / name
        try:
            st = path.stat()
        except OSError:
            return {"name": name, "size": 0, "mtime_ms": 0, "exists": False, "type": "f"}
        return {
            "name": name,
            "size": st.st_size,
            "mtime_ms": int(st.st_mtime * 1000),
            "exists": True,
            "type": "f",
        }

    def cancel(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None


class WatchdogSource(NotificationSource):
    """Notification source running a watchdog observer in-process.

    Speaks the same request/response shape as watchman. Clock tokens are
    ``c:<pid>:<tick>`` where the tick advances once per emitted batch; the
    observer only starts at subscribe time, so ``since`` never needs replay.
    """

    def __init__(self, settle_ms: int = 200):
        """Initialize source.

        Args:
            settle_ms: Quiet period before a burst of changes is emitted
        """
        self.settle_ms = settle_ms
        self.observer = Observer()
        self.handlers: dict[str, _SubscriptionHandler] = {}
        self._queues: dict[str, asyncio.Queue] = {}
        self._watches: set[str] = set()
        self._tick = 0
        self._tick_lock = threading.Lock()
        self._closed = False

    def _next_clock(self) -> str:
        with self._tick_lock:
            self._tick += 1
            return f"c:{os.getpid()}:{self._tick}"

    def _check_open(self) -> None:
        if self._closed:
            raise SourceError("Source is closed")

    async def capability_check(self, required: list[str]) -> None:
        self._check_open()
        missing = [c for c in required if c not in CAPABILITIES]
        if missing:
            raise SourceError(f"client required capability `{', '.join(missing)}` is not supported")

    async def watch_project(self, path: Path) -> dict:
        self._check_open()
        path = Path(path)
        if not path.is_dir():
            raise SourceError(f"unable to resolve root {path}: directory does not exist")
        watch = str(path.resolve())
        self._watches.add(watch)
        return {"watch": watch}

    async def clock(self, watch: str) -> str:
        self._check_open()
        if watch not in self._watches:
            raise SourceError(f"unable to resolve root {watch}: not watched")
        with self._tick_lock:
            return f"c:{os.getpid()}:{self._tick}"

    async def subscribe(self, watch: str, name: str, query: dict) -> dict:
        self._check_open()
        if watch not in self._watches:
            raise SourceError(f"unable to resolve root {watch}: not watched")
        if name in self.handlers:
            raise SourceError(f"subscription '{name}' already exists")

        expression = query.get("expression", ["true"])
        validate_expression(expression)

        root = Path(watch)
        if query.get("relative_root"):
            root = root / query["relative_root"]
        if not root.is_dir():
            raise SourceError(f"relative_root {root} does not exist")

        queue: asyncio.Queue = asyncio.Queue()
        handler = _SubscriptionHandler(
            source=self,
            name=name,
            watch=watch,
            root=root,
            expression=expression,
            queue=queue,
            loop=asyncio.get_running_loop(),
            settle_ms=self.settle_ms,
        )
        self.observer.schedule(handler, str(root), recursive=True)
        self.handlers[name] = handler
        self._queues[name] = queue

        if not self.observer.is_alive():
            self.observer.start()
        logger.info(f"Watching {root} for subscription '{name}' (settle: {self.settle_ms}ms)")
        return {"subscribe": name, "clock": query.get("since")}

    async def receive(self, watch: str, name: str) -> dict:
        self._check_open()
        queue = self._queues.get(name)
        if queue is None:
            raise SourceError(f"no subscription named '{name}'")
        return await queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for handler in self.handlers.values():
            handler.cancel()
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=2.0)
            logger.info("Stopped file watcher")
