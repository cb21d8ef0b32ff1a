# portfolio/models/project.py
from portfolio.db.base import Base
from portfolio.db.enums import ProjectStatus
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, DateTime, Enum, Float, Integer, Boolean, Text, func
from sqlalchemy.orm import Mapped, mapped_column

# Columns carrying this marker are diffed into PROJECT_UPDATED log entries.
LOGGABLE = {"loggable": True}


class Project(Base):
    __tablename__ = "projects"

    # =========
    # 🔒 Identity
    # =========
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment='Project UUID')
    created_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment='User ID of the creator')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment='Creation timestamp')
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Last update timestamp")

    # =========
    # 📋 Core description
    # =========
    project_title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        info=LOGGABLE,
        comment="Project title")
    department: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        info=LOGGABLE,
        comment="Department name (free text)")
    department_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Owning department ID")
    drivers: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Business drivers")
    type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Project type, e.g. Planned")
    opd_focal: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        info=LOGGABLE,
        comment="Focal person name, copied from users.name")
    area: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Area / site")
    capex_opex: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="CAPEX or OPEX")
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Budget year")
    brief_status: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Short status summary")
    pr: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Purchase request number")
    duration: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Planned duration")
    po_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Purchase order number")
    pmo_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="PMO reference number")
    quarter_of_year: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="Quarter, e.g. Q1")
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free text note")

    # =========
    # 🔁 Workflow
    # =========
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"),
        nullable=False,
        default=ProjectStatus.Possible,
        comment="Lifecycle status")
    sub_status: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Free text sub status")
    percentage: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        default=0,
        info=LOGGABLE,
        comment="Completion percentage 0-100")
    status_change_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="When status last changed")
    status_change_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Note for the last status change")

    # =========
    # 💰 Money (OMR)
    # =========
    budget: Mapped[Optional[float]] = mapped_column(Float, nullable=True, info=LOGGABLE, comment="Budget")
    award_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True, info=LOGGABLE, comment="Awarded amount")
    awarded_company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Awarded company")
    savings_omr: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="budget - award_amount")
    savings_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Savings as percent of budget")

    # =========
    # 📅 Dates
    # =========
    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, info=LOGGABLE, comment="Planned / actual start")
    completion_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, info=LOGGABLE, comment="Planned / actual completion")
    date_of_receive_final_doc: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Date the final documents were received")

    # =========
    # 🗄️ Archive
    # =========
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="Archived flag")
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="When archived")
    archived_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="User ID who archived")

    @classmethod
    def loggable_fields(cls) -> List[str]:
        '''Attribute names whose column is marked loggable, in declaration order.'''
        return [
            column.key
            for column in cls.__table__.columns
            if column.info.get("loggable")
        ]

    def __repr__(self) -> str:
        return f"<Project id={self.id} project_title={self.project_title}>"
