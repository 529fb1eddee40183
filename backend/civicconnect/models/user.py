"""User and department database models."""

import enum
from typing import Optional

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from civicconnect.models.base import Base


class UserRole(str, enum.Enum):
    """Roles a user can hold."""

    CITIZEN = "citizen"
    ADMIN = "admin"


class User(Base):
    """Registered citizen or municipal staff member."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.CITIZEN,
        nullable=False,
    )

    @validates("role")
    def _role_is_set_once(self, key: str, value: UserRole) -> UserRole:
        # Role changes go through provisioning, never through an update.
        current = self.__dict__.get("role")
        if current is not None and current != value:
            raise ValueError("User role cannot be changed once assigned")
        return value

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()


class Department(Base):
    """Municipal department a report can be routed to."""

    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
