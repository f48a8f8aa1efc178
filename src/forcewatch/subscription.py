"""Change subscription: clock checkpoint, query and batch delivery."""

import copy
import logging
from collections.abc import Callable

from forcewatch.models import SessionState
from forcewatch.session import WatchSession
from forcewatch.watchers import SourceError

logger = logging.getLogger(__name__)

EXPRESSION = ["anyof", ["match", "*.cls"], ["match", "*.trigger"]]
FIELDS = ["name", "size", "mtime_ms", "exists", "type"]


def build_subscription_query(clock: str, relative_root: str | None = None) -> dict:
    """Build the subscribe query for Apex sources changed after ``clock``."""
    query = {
        "expression": copy.deepcopy(EXPRESSION),
        "fields": list(FIELDS),
        "since": clock,
    }
    if relative_root:
        query["relative_root"] = relative_root
    return query


class Subscription:
    """A named subscription on an established WatchSession."""

    def __init__(self, session: WatchSession, name: str = "forcewatch"):
        self.session = session
        self.name = name
        self.clock: str | None = None
        self.query: dict | None = None

    async def register(self) -> dict:
        """Obtain a clock and subscribe from it.

        A clock failure closes the connection. A subscribe failure leaves it
        open but nothing will be delivered.

        Returns:
            The source's subscribe response

        Raises:
            RuntimeError: If the session is not in the WATCHING state
            SetupError: If either request fails
        """
        session = self.session
        if session.state is not SessionState.WATCHING:
            raise RuntimeError(f"Session is {session.state.value}; establish() must succeed before subscribing")

        try:
            self.clock = await session.source.clock(session.watch)
        except SourceError as e:
            session.notifier.error(f"Failed to query clock: {e}")
            raise session.fail("clock", e) from e
        session.advance(SessionState.WATCHING, SessionState.CLOCK_OBTAINED)

        self.query = build_subscription_query(self.clock, session.relative_path)
        try:
            resp = await session.source.subscribe(session.watch, self.name, self.query)
        except SourceError as e:
            session.notifier.error(f"failed to subscribe: {e}")
            raise session.fail("subscribe", e, close=False) from e
        session.advance(SessionState.CLOCK_OBTAINED, SessionState.SUBSCRIBED)

        session.notifier.info(f"subscription {resp.get('subscribe', self.name)} established")
        session.notifier.info("")
        return resp

    async def listen(self, handler: Callable[[dict], None]) -> None:
        """Deliver every batch to ``handler`` until the source fails.

        The handler runs synchronously, once per batch, in delivery order.
        Handler exceptions are logged and do not stop delivery.

        Raises:
            RuntimeError: If the subscription is not registered
            SourceError: When the source stops delivering
        """
        session = self.session
        session.advance(SessionState.SUBSCRIBED, SessionState.LISTENING)
        logger.info(f"Listening for '{self.name}' on {session.watch}")

        while True:
            try:
                pdu = await session.source.receive(session.watch, self.name)
            except SourceError as e:
                logger.error(f"Subscription '{self.name}' stopped: {e}")
                session.state = SessionState.FAILED
                raise

            try:
                handler(pdu)
            except Exception as e:
                logger.exception(f"Error handling batch for '{self.name}': {e}")
