"""Cross-process change notices over Redis pub/sub.

Each write announces the changed collection on a shared channel. Every other
process listening on the channel re-reads that collection from the shared
store and pushes it to its own subscribers.
"""

import asyncio
import contextlib
import json
import logging
import uuid
from collections.abc import Callable, Coroutine
from functools import wraps
from typing import Any, Protocol, TypeVar

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from crewtasks.core.config import Constants
from crewtasks.core.errors import StoreUnavailableError
from crewtasks.core.logging import log_with_context
from crewtasks.core.repository import COLLECTIONS


logger = logging.getLogger(__name__)

# Type variable for generic retry decorator
T = TypeVar("T")


class Refreshable(Protocol):
    """A repository that can re-read and re-publish a collection."""

    async def refresh(self, collection: str) -> None: ...


def with_retry(
    max_retries: int = 3, base_delay: float = 0.1
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """Decorator to retry async functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 0.1)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except RedisError as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Redis operation failed (attempt %d/%d): %s. Retrying in %.2fs",
                            attempt + 1,
                            max_retries,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error("Redis operation failed after %d attempts: %s", max_retries, e)
            raise last_exception  # type: ignore[misc]

        return wrapper

    return decorator


class RedisChangeRelay:
    """Publishes and consumes change notices on a Redis channel."""

    def __init__(self, *, url: str | None = None, channel: str, client: Redis | None = None) -> None:
        """Create the relay from a URL or an existing client."""
        if client is None:
            if not url:
                msg = "RedisChangeRelay needs either a url or a client"
                raise ValueError(msg)
            pool = ConnectionPool.from_url(url, decode_responses=True, max_connections=Constants.REDIS_MAX_CONNECTIONS)
            client = Redis(connection_pool=pool)
        self._client = client
        self._channel = channel
        self._origin = uuid.uuid4().hex
        self._repository: Refreshable | None = None
        self._pubsub: PubSub | None = None
        self._listener: asyncio.Task[None] | None = None

    @property
    def origin(self) -> str:
        """Identifier stamped on notices from this process."""
        return self._origin

    def bind(self, repository: Refreshable) -> None:
        """Set the repository refreshed when another process announces a change."""
        self._repository = repository

    @with_retry()
    async def _publish(self, payload: str) -> None:
        await self._client.publish(self._channel, payload)

    async def announce(self, collection: str) -> None:
        """Tell other processes that ``collection`` changed.

        The store write has already succeeded at this point, so a Redis
        failure is logged and does not fail the caller.
        """
        payload = json.dumps({"origin": self._origin, "collection": collection})
        try:
            await self._publish(payload)
        except RedisError as e:
            logger.error("change_notice_failed", extra={"collection": collection, "error": str(e)})

    async def handle_message(self, data: str | bytes) -> bool:
        """Apply one notice; returns True if a refresh was triggered."""
        try:
            notice = json.loads(data)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed change notice", extra={"data": str(data)[:200]})
            return False

        if not isinstance(notice, dict) or notice.get("origin") == self._origin:
            return False

        collection = notice.get("collection")
        if collection not in COLLECTIONS or self._repository is None:
            return False

        try:
            await self._repository.refresh(collection)
        except StoreUnavailableError as e:
            log_with_context(logger, "error", "change_refresh_failed", collection=collection, error=str(e))
            return False
        return True

    async def start(self) -> None:
        """Subscribe to the channel and start the listener task."""
        if self._listener is not None:
            return
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(self._channel)
        self._listener = asyncio.create_task(self._listen())
        logger.info("Change relay listening", extra={"channel": self._channel})

    async def _listen(self) -> None:
        assert self._pubsub is not None  # noqa: S101
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    await self.handle_message(message["data"])
                except Exception:
                    # One bad notice must not end the listener
                    logger.exception("change_notice_handling_failed", extra={"channel": self._channel})
        except RedisError as e:
            logger.error("change_relay_listener_stopped", extra={"error": str(e)})

    async def stop(self) -> None:
        """Stop listening and close the Redis connection."""
        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener
            self._listener = None
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is not None:
            try:
                await pubsub.unsubscribe(self._channel)
            except RedisError as e:
                logger.warning("Error unsubscribing change relay", extra={"error": str(e)})
            await pubsub.aclose()
        await self._client.aclose()
        logger.info("Change relay stopped")

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return False
