"""Watch session setup: capability handshake and watch-project."""

import logging
from pathlib import Path

from forcewatch.models import SessionState, WatchInfo
from forcewatch.notifier import NoOpNotifier, Notifier
from forcewatch.watchers import NotificationSource, SourceError

logger = logging.getLogger(__name__)

REQUIRED_CAPABILITIES = ["relative_root"]


class SetupError(RuntimeError):
    """A setup step failed; the run cannot continue."""

    def __init__(self, step: str, cause: Exception):
        super().__init__(f"{step} failed: {cause}")
        self.step = step
        self.cause = cause


class WatchSession:
    """Owns the notification source connection for one run.

    State moves INIT -> WATCHING here; the Subscription drives it through
    CLOCK_OBTAINED, SUBSCRIBED and LISTENING. Any failed step moves it to
    FAILED and the session is not reusable.
    """

    def __init__(self, source: NotificationSource, root: str | Path, notifier: Notifier | None = None):
        """Initialize session.

        Args:
            source: Notification source connection
            root: Absolute directory to watch
            notifier: Operator notifications (defaults to NoOpNotifier)
        """
        self.source = source
        self.root = Path(root)
        self.notifier = notifier or NoOpNotifier()
        self.state = SessionState.INIT
        self.watch_info: WatchInfo | None = None
        self._closed = False

    @property
    def watch(self) -> str:
        if self.watch_info is None:
            raise RuntimeError("Watch not established - call establish() first")
        return self.watch_info.watch

    @property
    def relative_path(self) -> str | None:
        return self.watch_info.relative_path if self.watch_info else None

    def advance(self, expected: SessionState, new: SessionState) -> None:
        """Move from ``expected`` to ``new``, refusing out-of-order steps."""
        if self.state is not expected:
            raise RuntimeError(f"Session is {self.state.value}, expected {expected.value}")
        logger.debug(f"Session state: {self.state.value} -> {new.value}")
        self.state = new

    def fail(self, step: str, error: Exception, close: bool = True) -> SetupError:
        """Record a fatal setup error and return it for raising."""
        logger.error(f"Watch setup failed at {step}: {error}")
        self.state = SessionState.FAILED
        if close:
            self.close()
        return SetupError(step, error)

    async def establish(self) -> WatchInfo:
        """Check capabilities and start watching the root.

        Returns:
            WatchInfo as reported by the source

        Raises:
            RuntimeError: If called more than once
            SetupError: If the source rejects either step
        """
        if self.state is not SessionState.INIT:
            raise RuntimeError(f"Session already {self.state.value}; establish() runs once")

        try:
            await self.source.capability_check(required=REQUIRED_CAPABILITIES)
        except SourceError as e:
            self.notifier.error(str(e))
            raise self.fail("capability", e) from e

        try:
            resp = await self.source.watch_project(self.root)
            info = WatchInfo.from_response(resp)
        except (SourceError, KeyError) as e:
            self.notifier.error(f"Error initiating watch: {e}")
            raise self.fail("watch", e) from e

        if info.warning:
            self.notifier.warning(f"warning: {info.warning}")

        self.watch_info = info
        self.advance(SessionState.INIT, SessionState.WATCHING)
        self.notifier.info(f"watch established on {info.watch} relative_path {info.relative_path}")
        return info

    def close(self) -> None:
        """Tear down the source connection once."""
        if self._closed:
            return
        self._closed = True
        try:
            self.source.close()
        except Exception as e:
            logger.error(f"Error closing notification source: {e}")
