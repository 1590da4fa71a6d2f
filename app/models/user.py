"""ORM models for user accounts, roles and role memberships (auth and RBAC)."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from app.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base):
    """
    User account for JWT authentication.

    normalized_username (lowercased, trimmed) carries the unique constraint, so
    "Alice" and " alice " are the same account.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(255), nullable=False)
    normalized_username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True)
    normalized_email = Column(String(255), nullable=True, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )


class Role(Base):
    """Named permission group ('Admin', 'User', custom)."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False)
    normalized_name = Column(String(64), nullable=False, unique=True, index=True)


class UserRole(Base):
    """Membership of a user in a role; the composite key makes assignment idempotent."""

    __tablename__ = "user_roles"

    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role_id = Column(
        Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
