"""Watch-and-deploy controller. Primary embed point."""

import logging

from forcewatch.classifier import classify
from forcewatch.config import WatchConfig
from forcewatch.dispatcher import DeployDispatcher
from forcewatch.models import ArtifactGroup, NotificationBatch
from forcewatch.notifier import NoOpNotifier, Notifier
from forcewatch.progress import ProgressBoard
from forcewatch.session import SetupError, WatchSession
from forcewatch.subscription import Subscription
from forcewatch.watchers import NotificationSource, SourceError

logger = logging.getLogger(__name__)


def create_source(config: WatchConfig) -> NotificationSource:
    """Build the notification source selected by ``config.backend``."""
    if config.backend == "watchdog":
        from forcewatch.file_watcher import WatchdogSource

        return WatchdogSource(settle_ms=config.settle_ms)

    from forcewatch.watchman_source import WatchmanSource

    return WatchmanSource()


class ForceWatchController:
    """Wires session, subscription, classifier and dispatcher for one run.

    Usage (Embedded):
        controller = ForceWatchController(config, source=my_source)
        await controller.setup()
        await controller.listen()
    """

    def __init__(
        self,
        config: WatchConfig,
        source: NotificationSource | None = None,
        notifier: Notifier | None = None,
        progress: ProgressBoard | None = None,
        dispatcher: DeployDispatcher | None = None,
    ):
        """Initialize controller.

        Args:
            config: Resolved configuration
            source: Notification source (defaults to the configured backend)
            notifier: Operator notifications (defaults to NoOpNotifier - silent)
            progress: Spinner board for deploys (none when omitted)
            dispatcher: Custom dispatcher; built from config when omitted
        """
        self.config = config
        self.notifier = notifier or NoOpNotifier()
        self.source = source or create_source(config)
        self.session = WatchSession(self.source, config.watch_root, self.notifier)
        self.subscription = Subscription(self.session, config.subscription)
        self.dispatcher = dispatcher or DeployDispatcher(
            deploy_tool=config.deploy_tool,
            notifier=self.notifier,
            progress=progress,
        )

    async def setup(self) -> None:
        """Run the setup steps in order: capabilities, watch, clock, subscribe.

        Raises:
            SetupError: If any step fails
        """
        await self.session.establish()
        await self.subscription.register()

    def handle_notification(self, pdu: dict) -> ArtifactGroup:
        """Classify one subscription batch and dispatch its deploys."""
        batch = NotificationBatch.from_pdu(pdu)
        if batch.subscription != self.subscription.name:
            logger.debug(f"Ignoring batch for subscription '{batch.subscription}'")
            return ArtifactGroup()

        group = classify(batch.files)

        logger.debug(
            f"Batch of {len(batch.files)} file(s): "
            f"{len(group.classes)} class(es), {len(group.triggers)} trigger(s)"
        )
        if not group.is_empty:
            self.dispatcher.dispatch(group)
        return group

    async def listen(self) -> None:
        """Handle batches until the source stops delivering."""
        await self.subscription.listen(self.handle_notification)

    async def run(self) -> int:
        """Set up and listen for the lifetime of the process.

        A failed subscribe leaves the connection open; every other exit
        closes it.

        Returns:
            Process exit code: 1 if setup failed or the source dropped
        """
        try:
            await self.setup()
        except SetupError as e:
            logger.error(f"Watch setup aborted: {e}")
            return 1

        try:
            await self.listen()
        except SourceError as e:
            self.notifier.error(f"Lost connection to notification source: {e}")
            await self.dispatcher.wait_idle()
            return 1
        finally:
            self.shutdown()
        return 0

    def shutdown(self) -> None:
        """Close the notification source connection."""
        self.session.close()
