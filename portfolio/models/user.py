# portfolio/models/user.py
from sqlalchemy import String, DateTime, Enum, Text, func
from portfolio.db.base import Base
from portfolio.db.enums import UserRole
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional


class User(Base):
    """
    Team member. ``name`` is copied onto projects as ``opd_focal``.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="User UUID")

    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Display name")

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Login email, unique",
    )

    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="bcrypt hash, never serialized",
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.USER,
        comment="USER / ADMIN / PMO",
    )

    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Department name")
    department_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True, comment="Department ID")
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="Phone number")
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Short biography")
    job_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Job title")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Account creation timestamp",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Last update timestamp",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
