"""Select and wire the repository backend once at startup."""

import logging

from crewtasks.core.config import Settings
from crewtasks.core.local_store import LocalRepository
from crewtasks.core.redis_relay import RedisChangeRelay
from crewtasks.core.repository import BaseRepository
from crewtasks.core.sqlite_store import SqliteRepository


logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> BaseRepository:
    """Create the configured backend (not yet connected)."""
    if settings.storage_backend == "local":
        logger.info("Using local file store", extra={"path": settings.local_store_path})
        return LocalRepository(settings.local_store_path)

    logger.info("Using shared SQLite store", extra={"path": settings.sqlite_db_path})
    return SqliteRepository(settings.sqlite_db_path)


def build_change_relay(settings: Settings, repository: BaseRepository) -> RedisChangeRelay | None:
    """Create a Redis relay bound to ``repository`` when Redis is configured.

    The local file store is single-process, so it never gets a relay.
    """
    if not settings.redis_url or settings.storage_backend == "local":
        logger.info("Redis URL not configured or local store selected. Running without change relay.")
        return None

    relay = RedisChangeRelay(url=settings.redis_url, channel=settings.redis_channel)
    relay.bind(repository)
    repository.attach_relay(relay)
    return relay
