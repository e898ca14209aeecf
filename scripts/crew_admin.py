#!/usr/bin/env python3
"""Admin script to inspect and seed the configured store.

Usage:
    uv run python scripts/crew_admin.py --list
    uv run python scripts/crew_admin.py --seed <admin_pin>
    uv run python scripts/crew_admin.py --delete-user <user_id>
"""

import asyncio
import logging
import sys

from crewtasks.core.config import settings
from crewtasks.core.repository import BaseRepository
from crewtasks.core.store_factory import build_repository
from crewtasks.core.week import today_iso
from crewtasks.services import user_service
from crewtasks.services.seed import seed_if_empty
from crewtasks.services.task_schedule import is_completed, is_visible


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def list_crew(repo: BaseRepository) -> None:
    """List users with today's visible and completed task counts."""
    today = today_iso()
    tasks = await repo.list_tasks()

    for user in await repo.list_users():
        mine = [task for task in tasks if task.assigned_to_user_id == user.id and is_visible(task, today)]
        done = sum(1 for task in mine if is_completed(task, today))
        logger.info(f"{user.id} - {user.name} ({user.role}) today: {done}/{len(mine)} done")

    known = {user.id for user in await repo.list_users()}
    orphans = [task for task in tasks if task.assigned_to_user_id not in known]
    if orphans:
        logger.info(f"{len(orphans)} task(s) reference missing users")


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    repo = build_repository(settings)
    await repo.connect()
    try:
        if "--list" in args:
            await list_crew(repo)
        elif "--seed" in args:
            index = args.index("--seed")
            if index + 1 >= len(args):
                sys.exit(1)
            await seed_if_empty(repo=repo, admin_pin=args[index + 1])
        elif "--delete-user" in args:
            index = args.index("--delete-user")
            if index + 1 >= len(args):
                sys.exit(1)
            if not await user_service.delete_user(repo=repo, user_id=args[index + 1]):
                sys.exit(1)
        else:
            print_usage()
    finally:
        await repo.close()


if __name__ == "__main__":
    asyncio.run(main())
