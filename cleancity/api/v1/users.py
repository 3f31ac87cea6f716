"""Actor directory endpoints.

Registration is open (the upstream auth layer issues credentials); every
other endpoint is restricted to agents.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException

from cleancity.api.deps import current_actor, get_directory
from cleancity.models.enums import UserRole
from cleancity.models.user import User, UserRegistration, UserView
from cleancity.services.directory import ActorDirectory

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def require_agent(actor: User = Depends(current_actor)) -> User:
    if actor.role != UserRole.AGENT:
        raise HTTPException(status_code=403, detail="Agents only.")
    return actor


@router.post("", response_model=UserView, status_code=201)
async def register_user(
    body: UserRegistration,
    directory: ActorDirectory = Depends(get_directory),
) -> UserView:
    user = await directory.register(body)
    return UserView.of(user)


@router.get("", response_model=list[UserView])
async def list_users(
    role: UserRole | None = None,
    _: User = Depends(require_agent),
    directory: ActorDirectory = Depends(get_directory),
) -> list[UserView]:
    users = await directory.list_by_role(role) if role else await directory.list_all()
    return [UserView.of(u) for u in users]


@router.get("/workers", response_model=list[UserView])
async def list_active_workers(
    _: User = Depends(require_agent),
    directory: ActorDirectory = Depends(get_directory),
) -> list[UserView]:
    """Workers an agent can pick for assignment (active only)."""
    workers = await directory.list_by_role(UserRole.WORKER, active_only=True)
    return [UserView.of(u) for u in workers]


@router.get("/me", response_model=UserView)
async def whoami(actor: User = Depends(current_actor)) -> UserView:
    return UserView.of(actor)


@router.get("/{user_id}", response_model=UserView)
async def get_user(
    user_id: str,
    _: User = Depends(require_agent),
    directory: ActorDirectory = Depends(get_directory),
) -> UserView:
    return UserView.of(await directory.resolve(user_id))


@router.put("/{user_id}/activate", response_model=UserView)
async def activate_user(
    user_id: str,
    agent: User = Depends(require_agent),
    directory: ActorDirectory = Depends(get_directory),
) -> UserView:
    user = await directory.activate(user_id)
    logger.info("api.users.activated", user_id=user_id, agent_id=agent.id)
    return UserView.of(user)


@router.put("/{user_id}/deactivate", response_model=UserView)
async def deactivate_user(
    user_id: str,
    agent: User = Depends(require_agent),
    directory: ActorDirectory = Depends(get_directory),
) -> UserView:
    user = await directory.deactivate(user_id)
    logger.info("api.users.deactivated", user_id=user_id, agent_id=agent.id)
    return UserView.of(user)
