# portfolio/models/project_log.py
from sqlalchemy import String, DateTime, Enum, JSON, Text, func, event
from portfolio.db.base import Base
from portfolio.db.enums import ProjectLogAction
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional


class ProjectLog(Base):
    """
    Append-only activity entry for a project.

    ``project_id`` is not a foreign key; logs stay until deleted explicitly.
    """

    __tablename__ = "project_logs"

    # =========
    # 🔒 Immutable fields (no update; delete only)
    # =========
    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Log UUID")

    project_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True, comment="Project ID")

    action: Mapped[ProjectLogAction] = mapped_column(
        Enum(ProjectLogAction, name="project_log_action"),
        nullable=False,
        comment="Kind of activity",
    )

    description: Mapped[str] = mapped_column(Text, nullable=False, comment="Human readable summary")

    # {"status": {"from": {"kind": "scalar", "value": "Possible"}, "to": {...}}}
    changes: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="Field level from/to changes")

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Optional user note")

    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Actor user ID")
    created_by_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Actor display name")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
        comment="When the activity was recorded",
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectLog project_id={self.project_id} "
            f"action={self.action.value}>"
        )


class ImmutableLogError(RuntimeError):
    pass


@event.listens_for(ProjectLog, "before_update")
def _reject_log_update(mapper, connection, target):
    raise ImmutableLogError(f"ProjectLog {target.id} is immutable")
