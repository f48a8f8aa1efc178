"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from forcewatch.config import WatchConfig  # noqa: E402
from forcewatch.watchers import SourceError  # noqa: E402


class FakeSource:
    """Scripted in-memory notification source.

    Records every command in ``calls``. Set ``errors[<command>]`` to make a
    command raise SourceError, and push batches with ``deliver()``.
    """

    def __init__(self, watch="/repo", relative_path=None, warning=None, clock="c:1:42"):
        self.watch = watch
        self.relative_path = relative_path
        self.warning = warning
        self.clock_token = clock
        self.calls: list[tuple] = []
        self.errors: dict[str, Exception] = {}
        self.closed = 0
        self.queue: asyncio.Queue = asyncio.Queue()

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]

    @property
    def command_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    async def capability_check(self, required):
        self._record("capability_check", list(required))

    async def watch_project(self, path):
        self._record("watch_project", path)
        resp = {"watch": self.watch}
        if self.relative_path:
            resp["relative_path"] = self.relative_path
        if self.warning:
            resp["warning"] = self.warning
        return resp

    async def clock(self, watch):
        self._record("clock", watch)
        return self.clock_token

    async def subscribe(self, watch, name, query):
        self._record("subscribe", watch, name, query)
        return {"subscribe": name, "clock": query["since"]}

    async def receive(self, watch, name):
        item = await self.queue.get()
        if isinstance(item, Exception):
            raise item
        return item

    def deliver(self, *names, subscription="forcewatch"):
        self.queue.put_nowait(
            {
                "subscription": subscription,
                "root": self.watch,
                "files": [{"name": n, "size": 10, "mtime_ms": 1, "exists": True, "type": "f"} for n in names],
            }
        )

    def disconnect(self, message="connection reset"):
        self.queue.put_nowait(SourceError(message))

    def close(self):
        self.closed += 1


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self):
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.outputs: list[str] = []

    def info(self, msg):
        self.infos.append(msg)

    def warning(self, msg):
        self.warnings.append(msg)

    def error(self, msg):
        self.errors.append(msg)

    def output(self, text):
        self.outputs.append(text)


class FakeRunner:
    """Deploy command runner returning scripted results per artifact type."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.results: dict[str, tuple[int, str, str] | Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}

    async def __call__(self, argv):
        self.calls.append(list(argv))
        type_name = argv[argv.index("-t") + 1]
        gate = self.gates.get(type_name)
        if gate is not None:
            await gate.wait()
        result = self.results.get(type_name, (0, f"pushed {argv[-1]}\n", ""))
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def config(tmp_path):
    (tmp_path / "src").mkdir()
    return WatchConfig(base_dir=tmp_path)
