# portfolio/models/department.py
from sqlalchemy import String, DateTime, Float, Text, func
from portfolio.db.base import Base
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Department UUID")
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, comment="Department name, unique")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Description")
    budget: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Department budget")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Creation timestamp",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Last update timestamp",
    )

    def __repr__(self) -> str:
        return f"<Department id={self.id} name={self.name}>"
