"""Role registry: lazily created roles and idempotent user-role assignment."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import UNAVAILABLE_ERRORS
from app.core.errors import DependencyError, ValidationError
from app.models.user import Role, User, UserRole

logger = logging.getLogger(__name__)


def normalize_role_name(name: str) -> str:
    return name.strip().upper()


def resolve_role_name(requested: str | None, default: str) -> str:
    """The requested role, or `default` when none or only whitespace was given."""
    return (requested or "").strip() or default


class RoleRegistry:
    """
    Ensures roles exist and manages memberships.

    Concurrent first use of a role name is resolved by the unique constraint on
    normalized_name: the losing insert rolls back and re-reads the winner's row.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _find_role(self, name: str) -> Role | None:
        result = await self._session.execute(
            select(Role).where(Role.normalized_name == normalize_role_name(name))
        )
        return result.scalar_one_or_none()

    async def ensure_role(self, name: str) -> Role:
        """Return the role named `name`, creating it on first use."""
        if not name or not name.strip():
            raise ValidationError("Role name is required")
        try:
            role = await self._find_role(name)
            if role is not None:
                return role
            role = Role(name=name.strip(), normalized_name=normalize_role_name(name))
            self._session.add(role)
            try:
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                role = await self._find_role(name)
                if role is None:
                    raise
                return role
            logger.info("Created role", extra={"role": role.name})
            return role
        except UNAVAILABLE_ERRORS as e:
            await self._session.rollback()
            raise DependencyError("Role store is unavailable") from e

    async def assign_role(self, user: User, role: Role) -> None:
        """Add `user` to `role`. Assigning a role the user already holds is a no-op."""
        try:
            existing = await self._session.get(UserRole, (user.id, role.id))
            if existing is not None:
                return
            self._session.add(UserRole(user_id=user.id, role_id=role.id))
            try:
                await self._session.commit()
            except IntegrityError:
                # Another request assigned the same role first.
                await self._session.rollback()
        except UNAVAILABLE_ERRORS as e:
            await self._session.rollback()
            raise DependencyError("Role store is unavailable") from e

    async def list_roles(self, user: User) -> list[Role]:
        """Roles held by `user`, oldest assignment first (ties broken by name)."""
        try:
            result = await self._session.execute(
                select(Role)
                .join(UserRole, UserRole.role_id == Role.id)
                .where(UserRole.user_id == user.id)
                .order_by(UserRole.assigned_at, Role.name)
            )
        except UNAVAILABLE_ERRORS as e:
            raise DependencyError("Role store is unavailable") from e
        return list(result.scalars().all())
