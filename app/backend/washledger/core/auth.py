"""Authentication context extraction and store scope resolution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from washledger.core.config import get_settings
from washledger.db.dependencies import get_db_session
from washledger.models.entities import RoleType, User


class AppRole(str, Enum):
    """Application role names allowed into the reporting area."""

    CHAIRMAN = "chairman"
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


ROLE_TYPE_TO_APP_ROLE: dict[RoleType, AppRole] = {
    RoleType.CHAIRMAN: AppRole.CHAIRMAN,
    RoleType.OWNER: AppRole.OWNER,
    RoleType.MANAGER: AppRole.MANAGER,
    RoleType.STAFF: AppRole.STAFF,
}

STORE_STAFF_ROLES = {RoleType.STAFF, RoleType.MANAGER}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor with the stores they may report on."""

    user_id: UUID
    username: str
    display_name: str
    role: AppRole
    owner_id: UUID | None
    viewable_owner_ids: tuple[UUID, ...]

    @property
    def is_chairman(self) -> bool:
        return self.role is AppRole.CHAIRMAN


def resolve_owner_id(user_id: UUID, users_by_id: Mapping[UUID, User]) -> UUID | None:
    """Walk the ``managed_by`` chain up to the owning store.

    The chairman and users detached from any owner resolve to ``None``.
    """

    current = users_by_id.get(user_id)
    if current is None or current.role is RoleType.CHAIRMAN:
        return None
    if current.role is RoleType.OWNER:
        return current.id

    visited: set[UUID] = {current.id}
    while current.managed_by_id is not None:
        manager = users_by_id.get(current.managed_by_id)
        if manager is None or manager.id in visited:
            return None
        if manager.role is RoleType.OWNER:
            return manager.id
        if manager.role is RoleType.CHAIRMAN:
            return None
        visited.add(manager.id)
        current = manager
    return None


def load_users_by_id(db: Session) -> dict[UUID, User]:
    return {user.id: user for user in db.scalars(select(User).where(User.active.is_(True))).all()}


def store_owner_ids(db: Session) -> tuple[UUID, ...]:
    return tuple(
        db.scalars(
            select(User.id)
            .where(and_(User.role == RoleType.OWNER, User.active.is_(True)))
            .order_by(User.display_name.asc())
        ).all()
    )


def staff_roster(users_by_id: Mapping[UUID, User], owner_ids: tuple[UUID, ...]) -> dict[UUID, frozenset[UUID]]:
    """Staff and manager user ids grouped by the store they resolve to."""

    roster: dict[UUID, set[UUID]] = {owner_id: set() for owner_id in owner_ids}
    for user in users_by_id.values():
        if user.role not in STORE_STAFF_ROLES:
            continue
        owner_id = resolve_owner_id(user.id, users_by_id)
        if owner_id in roster:
            roster[owner_id].add(user.id)
    return {owner_id: frozenset(members) for owner_id, members in roster.items()}


def _resolve_username(x_username: str | None) -> str:
    if x_username and x_username.strip():
        return x_username.strip().lower()

    settings = get_settings()
    if settings.auth_allow_dev_principal:
        return settings.auth_dev_username.strip().lower()

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing identity header. Expected X-USERNAME or enable development principal fallback.",
    )


def get_current_user_context(
    x_username: str | None = Header(default=None, alias="X-USERNAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and the stores visible to them.

    Header strategy: trusted ``X-USERNAME`` header set by the upstream proxy.
    """

    username = _resolve_username(x_username)
    user = db.scalar(select(User).where(and_(User.username == username, User.active.is_(True))))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user.")

    role = ROLE_TYPE_TO_APP_ROLE.get(user.role)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient role permissions for this operation.",
        )

    if role is AppRole.CHAIRMAN:
        owner_id = None
        viewable = store_owner_ids(db)
    else:
        owner_id = resolve_owner_id(user.id, load_users_by_id(db))
        viewable = (owner_id,) if owner_id is not None else ()

    return RequestUserContext(
        user_id=user.id,
        username=user.username,
        display_name=user.display_name,
        role=role,
        owner_id=owner_id,
        viewable_owner_ids=viewable,
    )


def has_store_access(context: RequestUserContext, *, owner_id: UUID) -> bool:
    return owner_id in context.viewable_owner_ids
