"""JSON and server-sent-event routes for the admin and employee clients."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel, Field

from crewtasks.core.change_feed import ChangeCallback, Unsubscribe
from crewtasks.core.config import constants, settings
from crewtasks.core.logging import log_with_user_context
from crewtasks.core.repository import BaseRepository
from crewtasks.core.week import today_iso
from crewtasks.domain.create_models import EmployeeCreate, TaskDraft
from crewtasks.domain.task import Task
from crewtasks.domain.user import User, UserRole
from crewtasks.services import board_service, completion_service, task_service, user_service


logger = logging.getLogger(__name__)

router = APIRouter(tags=["crewtasks"])

serializer = URLSafeTimedSerializer(settings.secret_key, salt="crew-session")
bearer = HTTPBearer(auto_error=False)


class PinLogin(BaseModel):
    """PIN submitted from the login keypad."""

    pin: str


class TaskSaveRequest(BaseModel):
    """Admin task form submission."""

    task_id: str | None = Field(default=None, description="Existing task when editing")
    view_date: str = Field(..., description="Date being viewed; one-off tasks are scheduled on it")
    draft: TaskDraft


class DisconnectAware(Protocol):
    """The part of a request the event stream needs."""

    async def is_disconnected(self) -> bool: ...


def get_repository(request: Request) -> BaseRepository:
    """Repository selected at startup."""
    return request.app.state.repository


def issue_session_token(user: User) -> str:
    """Signed, timestamped token identifying ``user``."""
    return serializer.dumps({"user_id": user.id})


async def require_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    repo: BaseRepository = Depends(get_repository),
) -> User:
    """Resolve the bearer session token to a current user."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing session token")

    try:
        payload = serializer.loads(credentials.credentials, max_age=constants.SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired) as err:
        logger.warning("session_token_rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session token") from err

    try:
        return await user_service.get_user(repo=repo, user_id=payload.get("user_id", ""))
    except KeyError as err:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session user no longer exists") from err


async def require_admin(user: User = Depends(require_session)) -> User:
    """Allow administrators only."""
    if user.role != UserRole.ADMIN:
        log_with_user_context(logger, "warning", "admin_route_forbidden", user_id=user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator access required")
    return user


@router.post("/session")
async def post_session(body: PinLogin, repo: BaseRepository = Depends(get_repository)) -> dict[str, Any]:
    """Log in with a PIN and receive a session token."""
    user = await user_service.verify_pin(repo=repo, pin=body.pin)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid PIN")
    return {"token": issue_session_token(user), "user": user.public_view()}


@router.get("/board")
async def get_board(
    view_date: str | None = Query(default=None, alias="date"),
    user_id: str | None = Query(default=None, alias="userId"),
    session: User = Depends(require_session),
    repo: BaseRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Day board for a user; employees can only see their own."""
    target_user = user_id or session.id
    if session.role != UserRole.ADMIN and target_user != session.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot view another user's board")

    board = board_service.build_day_board(
        tasks=await repo.list_tasks(), user_id=target_user, view_date=view_date or today_iso()
    )
    return board.model_dump(mode="json", by_alias=True)


@router.get("/week")
async def get_week(
    view_date: str | None = Query(default=None, alias="date"),
    _session: User = Depends(require_session),
) -> list[dict[str, Any]]:
    """Monday..Sunday strip around a date."""
    strip = board_service.build_week_strip(view_date or today_iso())
    return [day.model_dump(mode="json", by_alias=True) for day in strip]


@router.post("/tasks/{task_id}/toggle")
async def post_toggle(
    task_id: str,
    session: User = Depends(require_session),
    repo: BaseRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Toggle today's completion of a task; ``task`` is null if it no longer exists."""
    task = await repo.read_task(task_id)
    if task is not None and session.role != UserRole.ADMIN and task.assigned_to_user_id != session.id:
        log_with_user_context(logger, "warning", "toggle_forbidden", user_id=session.id, task_id=task_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task is assigned to someone else")

    updated = await completion_service.toggle_completion(repo=repo, task_id=task_id)
    done = bool(updated and updated.last_completed_date)
    log_with_user_context(logger, "info", "task_toggled", user_id=session.id, task_id=task_id, done=done)
    return {"task": updated.to_record() if updated else None}


@router.put("/tasks")
async def put_task(
    body: TaskSaveRequest,
    _admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Create or edit a task."""
    task = await task_service.save_task(repo=repo, draft=body.draft, view_date=body.view_date, task_id=body.task_id)
    return task.to_record()


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    _admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> None:
    """Delete a task."""
    if not await task_service.delete_task(repo=repo, task_id=task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


@router.get("/users")
async def get_users(
    _admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> list[dict[str, Any]]:
    """List employees."""
    return [user.public_view() for user in await user_service.list_employees(repo=repo)]


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def post_user(
    body: EmployeeCreate,
    _admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Create an employee."""
    user = await user_service.create_employee(repo=repo, form=body)
    return user.public_view()


@router.put("/users/{user_id}")
async def put_user(
    user_id: str,
    body: User,
    _admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Replace a user record."""
    if body.id != user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User id does not match path")
    user = await user_service.update_user(repo=repo, user=body)
    return user.public_view()


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> None:
    """Delete a user and all of their tasks."""
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete the signed-in administrator")
    if not await user_service.delete_user(repo=repo, user_id=user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


async def snapshot_events(
    subscribe: Callable[[ChangeCallback], Awaitable[Unsubscribe]],
    encode: Callable[[Any], dict[str, Any]],
    request: DisconnectAware,
    keepalive_seconds: float = constants.SSE_KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield one server-sent event per collection snapshot until the client leaves."""
    queue: asyncio.Queue[list[Any]] = asyncio.Queue()
    unsubscribe = await subscribe(queue.put_nowait)
    try:
        while not await request.is_disconnected():
            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"event: snapshot\ndata: {json.dumps([encode(item) for item in snapshot])}\n\n"
    finally:
        unsubscribe()


@router.get("/events/tasks")
async def stream_tasks(
    request: Request,
    _session: User = Depends(require_session),
    repo: BaseRepository = Depends(get_repository),
) -> StreamingResponse:
    """Live task snapshots."""
    return StreamingResponse(
        snapshot_events(repo.subscribe_to_tasks, Task.to_record, request),
        media_type="text/event-stream",
    )


@router.get("/events/users")
async def stream_users(
    request: Request,
    _admin: User = Depends(require_admin),
    repo: BaseRepository = Depends(get_repository),
) -> StreamingResponse:
    """Live user snapshots, without PINs."""
    return StreamingResponse(
        snapshot_events(repo.subscribe_to_users, User.public_view, request),
        media_type="text/event-stream",
    )
