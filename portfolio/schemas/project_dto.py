from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from portfolio.db.enums import ProjectStatus
from portfolio.models.project import Project
from portfolio.schemas.base_dto import (
    BaseDTO,
    BaseInput,
    coerce_date,
    coerce_int,
    coerce_number,
    coerce_text,
    enum_value,
)
from portfolio.utils.date_utils import to_iso_string

DATE_FIELDS = (
    "start_date",
    "completion_date",
    "date_of_receive_final_doc",
    "status_change_date",
    "archived_at",
    "created_at",
    "updated_at",
)


class ProjectDTO(BaseDTO):
    id: str
    project_title: str
    department: Optional[str] = None
    department_id: Optional[str] = None
    status: Optional[str] = None
    sub_status: Optional[str] = None
    percentage: Optional[int] = None

    budget: Optional[float] = None
    award_amount: Optional[float] = None
    awarded_company: Optional[str] = None
    savings_omr: Optional[float] = None
    savings_percentage: Optional[float] = None

    drivers: Optional[str] = None
    type: Optional[str] = None
    opd_focal: Optional[str] = None
    area: Optional[str] = None
    capex_opex: Optional[str] = None
    year: Optional[int] = None
    brief_status: Optional[str] = None
    pr: Optional[str] = None
    duration: Optional[str] = None
    po_number: Optional[str] = None
    pmo_number: Optional[str] = None
    quarter_of_year: Optional[str] = None
    status_change_note: Optional[str] = None
    note: Optional[str] = None

    # dates travel as ISO-8601 strings
    start_date: Optional[str] = None
    completion_date: Optional[str] = None
    date_of_receive_final_doc: Optional[str] = None
    status_change_date: Optional[str] = None

    created_by: Optional[str] = None
    is_archived: bool = False
    archived_at: Optional[str] = None
    archived_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_orm_model(cls, project: Project) -> "ProjectDTO":
        data = {
            name: getattr(project, name)
            for name in cls.model_fields
            if name not in DATE_FIELDS
        }
        data["status"] = enum_value(project.status)
        data["is_archived"] = bool(project.is_archived)
        for name in DATE_FIELDS:
            data[name] = to_iso_string(getattr(project, name))
        return cls(**data)


class ProjectInput(BaseInput):
    """
    Create / update body for a project. Every field is optional here;
    required-field rules live in ProjectService because create and update differ.
    """

    project_title: Optional[str] = None
    department: Optional[str] = None
    department_id: Optional[str] = None
    status: Optional[ProjectStatus] = None
    sub_status: Optional[str] = None
    percentage: Optional[int] = Field(default=None, ge=0, le=100)

    budget: Optional[float] = Field(default=None, ge=0)
    award_amount: Optional[float] = Field(default=None, ge=0)
    awarded_company: Optional[str] = None
    savings_omr: Optional[float] = None
    savings_percentage: Optional[float] = None

    drivers: Optional[str] = None
    type: Optional[str] = None
    opd_focal: Optional[str] = None
    area: Optional[str] = None
    capex_opex: Optional[str] = None
    year: Optional[int] = None
    brief_status: Optional[str] = None
    pr: Optional[str] = None
    duration: Optional[str] = None
    po_number: Optional[str] = None
    pmo_number: Optional[str] = None
    quarter_of_year: Optional[str] = None
    status_change_note: Optional[str] = None
    note: Optional[str] = None

    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    date_of_receive_final_doc: Optional[datetime] = None
    status_change_date: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _blank_status(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("budget", "award_amount", "savings_omr", "savings_percentage", mode="before")
    @classmethod
    def _number(cls, v):
        return coerce_number(v)

    @field_validator("percentage", "year", mode="before")
    @classmethod
    def _integer(cls, v):
        return coerce_int(v)

    @field_validator(
        "project_title", "department", "department_id", "sub_status", "awarded_company",
        "drivers", "type", "opd_focal", "area", "capex_opex", "brief_status", "pr",
        "duration", "po_number", "pmo_number", "quarter_of_year", "status_change_note", "note",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return coerce_text(v)

    @field_validator(
        "start_date", "completion_date", "date_of_receive_final_doc", "status_change_date",
        mode="before",
    )
    @classmethod
    def _date(cls, v):
        return coerce_date(v)
