from typing import List, Optional

from pydantic import Field, field_validator

from portfolio.models.department import Department
from portfolio.schemas.base_dto import BaseDTO, BaseInput, coerce_number, coerce_text
from portfolio.schemas.project_dto import ProjectDTO
from portfolio.schemas.user_dto import UserDTO
from portfolio.utils.date_utils import to_iso_string


class DepartmentDTO(BaseDTO):
    id: str
    name: str
    description: Optional[str] = None
    budget: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    # statistics, filled by DepartmentService.list_departments
    member_count: Optional[int] = None
    project_count: Optional[int] = None
    total_budget: Optional[float] = None

    @classmethod
    def from_orm_model(cls, department: Department, stats: Optional[dict] = None) -> "DepartmentDTO":
        stats = stats or {}
        return cls(
            id=department.id,
            name=department.name,
            description=department.description,
            budget=department.budget,
            created_at=to_iso_string(department.created_at),
            updated_at=to_iso_string(department.updated_at),
            member_count=stats.get("member_count"),
            project_count=stats.get("project_count"),
            total_budget=stats.get("total_budget"),
        )


class DepartmentDetailDTO(DepartmentDTO):
    users: List[UserDTO] = []
    projects: List[ProjectDTO] = []

    @classmethod
    def from_orm_model(cls, department: Department, users=None, projects=None) -> "DepartmentDetailDTO":
        users = users or []
        projects = projects or []
        base = DepartmentDTO.from_orm_model(
            department,
            {
                "member_count": len(users),
                "project_count": len(projects),
                "total_budget": sum(p.budget or 0 for p in projects),
            },
        )
        return cls(
            **base.model_dump(),
            users=[UserDTO.from_orm_model(u) for u in users],
            projects=[ProjectDTO.from_orm_model(p) for p in projects],
        )


class DepartmentInput(BaseInput):
    name: Optional[str] = None
    description: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _text(cls, v):
        return coerce_text(v)

    @field_validator("budget", mode="before")
    @classmethod
    def _number(cls, v):
        return coerce_number(v)
