from typing import List, Optional

from pydantic import field_validator

from portfolio.db.enums import UserRole
from portfolio.models.user import User
from portfolio.schemas.base_dto import BaseDTO, BaseInput, coerce_text, enum_value
from portfolio.utils.date_utils import to_iso_string


class UserDTO(BaseDTO):
    """Public view of a user; the password hash is never part of it."""

    id: str
    name: str
    email: str
    role: str
    department: Optional[str] = None
    department_id: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    job_title: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_orm_model(cls, user: User) -> "UserDTO":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=enum_value(user.role),
            department=user.department,
            department_id=user.department_id,
            phone=user.phone,
            bio=user.bio,
            job_title=user.job_title,
            created_at=to_iso_string(user.created_at),
            updated_at=to_iso_string(user.updated_at),
        )


class TeamProjectSummary(BaseDTO):
    id: str
    title: str
    status: Optional[str] = None
    percentage: Optional[int] = None

    @classmethod
    def from_orm_model(cls, project) -> "TeamProjectSummary":
        return cls(
            id=project.id,
            title=project.project_title,
            status=enum_value(project.status),
            percentage=project.percentage,
        )


class TeamMemberDTO(UserDTO):
    project_count: int = 0
    projects: List[TeamProjectSummary] = []

    @classmethod
    def from_orm_model(cls, user: User, projects=None) -> "TeamMemberDTO":
        projects = projects or []
        base = UserDTO.from_orm_model(user)
        return cls(
            **base.model_dump(),
            project_count=len(projects),
            projects=[TeamProjectSummary.from_orm_model(p) for p in projects],
        )


class UserInput(BaseInput):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None
    department_id: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    job_title: Optional[str] = None

    @field_validator("name", "department", "department_id", "phone", "bio", "job_title", mode="before")
    @classmethod
    def _text(cls, v):
        return coerce_text(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v


class PasswordChangeInput(BaseInput):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _length(cls, v):
        if len(v) < 6:
            raise ValueError("New password must be at least 6 characters long")
        return v
