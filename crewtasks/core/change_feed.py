"""In-process registry of live collection subscribers."""

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any


logger = logging.getLogger(__name__)

ChangeCallback = Callable[[list[Any]], None | Awaitable[None]]
Unsubscribe = Callable[[], None]


@dataclass
class _Subscriber:
    callback: ChangeCallback
    last_version: int = -1


class ChangeFeed:
    """Delivers full collection snapshots to subscribers.

    Every snapshot carries a version number. A subscriber never receives a
    snapshot older than one it has already seen, so out-of-order publishes
    after interleaved writes are dropped rather than rolling the view back.
    Unsubscribing is idempotent; once it returns, the callback is never
    invoked again.
    """

    def __init__(self) -> None:
        """Initialize empty subscriber registry."""
        self._subscribers: dict[str, dict[int, _Subscriber]] = {}
        self._next_token = 0

    def subscriber_count(self, collection: str) -> int:
        """Number of active subscribers for a collection."""
        return len(self._subscribers.get(collection, {}))

    def add(self, collection: str, callback: ChangeCallback) -> tuple[int, Unsubscribe]:
        """Register ``callback`` without delivering anything yet."""
        token = self._next_token
        self._next_token += 1
        subscribers = self._subscribers.setdefault(collection, {})
        subscribers[token] = _Subscriber(callback=callback)

        logger.debug("Subscriber added", extra={"collection": collection, "subscribers": len(subscribers)})

        def unsubscribe() -> None:
            if self._subscribers.get(collection, {}).pop(token, None) is not None:
                logger.debug("Subscriber removed", extra={"collection": collection})

        return token, unsubscribe

    async def publish(self, collection: str, snapshot: Sequence[Any], version: int) -> None:
        """Deliver ``snapshot`` to every current subscriber of ``collection``."""
        for token in list(self._subscribers.get(collection, {})):
            await self.deliver(collection, token, snapshot, version)

    async def deliver(self, collection: str, token: int, snapshot: Sequence[Any], version: int) -> None:
        """Deliver ``snapshot`` to one subscriber if it is still registered and behind ``version``."""
        subscriber = self._subscribers.get(collection, {}).get(token)
        if subscriber is None or version <= subscriber.last_version:
            return
        subscriber.last_version = version
        try:
            result = subscriber.callback(list(snapshot))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Subscriber callback failed", extra={"collection": collection})
