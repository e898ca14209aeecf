"""User service for PIN login and crew management."""

import logging
import secrets
import string
from urllib.parse import quote

from crewtasks.core.config import constants
from crewtasks.core.logging import span
from crewtasks.core.repository import Repository
from crewtasks.domain.create_models import EmployeeCreate
from crewtasks.domain.user import User, UserRole


logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_record_id() -> str:
    """Generate a short random record ID."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(constants.RECORD_ID_LENGTH))


def default_avatar_url(name: str) -> str:
    """Generated-initials avatar for users created without one."""
    return constants.DEFAULT_AVATAR_URL.format(name=quote(name))


async def verify_pin(*, repo: Repository, pin: str) -> User | None:
    """Return the first user whose PIN matches, or None.

    PINs are not unique; when several users share one, the first in store
    order wins.
    """
    with span("user_service.verify_pin"):
        if not pin or not pin.strip():
            return None

        for user in await repo.list_users():
            if user.pin == pin:
                logger.info("PIN login succeeded", extra={"user_id": user.id, "role": user.role})
                return user

        logger.warning("PIN login failed")
        return None


async def list_employees(*, repo: Repository) -> list[User]:
    """Return all non-admin users in store order."""
    return [user for user in await repo.list_users() if user.role != UserRole.ADMIN]


async def get_user(*, repo: Repository, user_id: str) -> User:
    """Get a user by ID.

    Raises:
        KeyError: If the user does not exist
    """
    for user in await repo.list_users():
        if user.id == user_id:
            return user
    msg = f"User not found: {user_id}"
    raise KeyError(msg)


async def create_employee(*, repo: Repository, form: EmployeeCreate) -> User:
    """Create an employee from the admin user form.

    Args:
        repo: Repository to write to
        form: Submitted name, PIN and optional avatar/position

    Returns:
        Created user record

    Raises:
        ValueError: If the name or PIN is blank
    """
    with span("user_service.create_employee"):
        name = form.name.strip()
        pin = form.pin.strip()
        if not name or not pin:
            msg = "Name and PIN are required"
            raise ValueError(msg)

        user = User(
            id=new_record_id(),
            name=name,
            role=UserRole.EMPLOYEE,
            pin=pin,
            avatar_url=(form.avatar_url or "").strip() or default_avatar_url(name),
            position=(form.position or "").strip() or constants.DEFAULT_POSITION,
        )
        await repo.upsert_user(user)
        logger.info("Created employee: %s", name, extra={"user_id": user.id})
        return user


async def update_user(*, repo: Repository, user: User) -> User:
    """Replace a user record in full.

    Raises:
        KeyError: If the user does not exist
    """
    with span("user_service.update_user"):
        await get_user(repo=repo, user_id=user.id)
        return await repo.upsert_user(user)


async def delete_user(*, repo: Repository, user_id: str) -> bool:
    """Delete a user together with every task assigned to it.

    Returns:
        True if the user existed
    """
    with span("user_service.delete_user"):
        existed = await repo.delete_user(user_id)
        if not existed:
            logger.warning("Delete requested for unknown user", extra={"user_id": user_id})
        return existed
