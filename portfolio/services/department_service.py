# portfolio/services/department_service.py
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from portfolio.errors import ConflictError, NotFoundError, ValidationError
from portfolio.logger import get_logger
from portfolio.models.department import Department
from portfolio.models.project import Project
from portfolio.models.user import User
from portfolio.utils.date_utils import utcnow

logger = get_logger(__name__)


class DepartmentService:
    """
    Department store with member / project statistics.
    A department cannot be deleted while users or projects point at it.
    """

    def __init__(self, db: Session):
        self.db = db

    def _require(self, department_id: str) -> Department:
        department = self.get_department(department_id)
        if not department:
            raise NotFoundError("Department", department_id)
        return department

    def _dependents(self, department_id: str) -> Tuple[int, int]:
        users = self.db.query(func.count(User.id)).filter(User.department_id == department_id).scalar()
        projects = self.db.query(func.count(Project.id)).filter(Project.department_id == department_id).scalar()
        return users or 0, projects or 0

    # ======================================================
    # 📖 Reads
    # ======================================================

    def get_department(self, department_id: str) -> Optional[Department]:
        return self.db.get(Department, department_id)

    def list_departments(self) -> List[Tuple[Department, Dict[str, Any]]]:
        '''
        All departments ordered by name, each with
        member_count, project_count and total_budget (sum of project budgets).
        '''
        departments = self.db.query(Department).order_by(Department.name).all()

        member_counts = dict(
            self.db.query(User.department_id, func.count(User.id))
            .filter(User.department_id.isnot(None))
            .group_by(User.department_id)
            .all()
        )
        project_stats = {
            row[0]: (row[1], row[2])
            for row in self.db.query(
                Project.department_id,
                func.count(Project.id),
                func.coalesce(func.sum(Project.budget), 0),
            )
            .filter(Project.department_id.isnot(None))
            .group_by(Project.department_id)
            .all()
        }

        result = []
        for department in departments:
            project_count, total_budget = project_stats.get(department.id, (0, 0))
            result.append((department, {
                "member_count": member_counts.get(department.id, 0),
                "project_count": project_count,
                "total_budget": float(total_budget or 0),
            }))
        return result

    def get_department_detail(self, department_id: str) -> Optional[Tuple[Department, List[User], List[Project]]]:
        department = self.get_department(department_id)
        if not department:
            return None
        users = (
            self.db.query(User)
            .filter(User.department_id == department_id)
            .order_by(User.name)
            .all()
        )
        projects = (
            self.db.query(Project)
            .filter(Project.department_id == department_id)
            .order_by(Project.created_at.desc())
            .all()
        )
        return department, users, projects

    def department_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Department).filter(Department.name == name)
        if exclude_id:
            query = query.filter(Department.id != exclude_id)
        return query.first() is not None

    # ======================================================
    # ✍️ Writes
    # ======================================================

    def create_department(
        self,
        *,
        name: Optional[str],
        description: Optional[str] = None,
        budget: Optional[float] = None,
    ) -> Department:
        if not name:
            raise ValidationError("Department name is required")
        if self.department_name_exists(name):
            raise ConflictError("Department with this name already exists", details={"name": name})

        now = utcnow()
        department = Department(
            id=str(uuid4()),
            name=name,
            description=description,
            budget=budget,
            created_at=now,
            updated_at=now,
        )
        self.db.add(department)
        self.db.flush()
        logger.info(f"Department created: {department.id} ({name})")
        return department

    def update_department(self, department_id: str, *, changes: Dict[str, Any]) -> Department:
        department = self._require(department_id)

        if "name" in changes:
            if not changes["name"]:
                raise ValidationError("Department name cannot be empty")
            if self.department_name_exists(changes["name"], exclude_id=department_id):
                raise ConflictError(
                    "Another department with this name already exists",
                    details={"name": changes["name"]},
                )

        for field in ("name", "description", "budget"):
            if field in changes:
                setattr(department, field, changes[field])
        department.updated_at = utcnow()
        self.db.flush()
        logger.info(f"Department updated: {department_id}")
        return department

    def delete_department(self, department_id: str) -> None:
        '''
        Hard delete.

        :raises NotFoundError: unknown id
        :raises ConflictError: users or projects still reference the department
        '''
        department = self._require(department_id)

        users, projects = self._dependents(department_id)
        if users:
            raise ConflictError(
                "Cannot delete department with associated users",
                details={"memberCount": users},
            )
        if projects:
            raise ConflictError(
                "Cannot delete department with associated projects",
                details={"projectCount": projects},
            )

        self.db.delete(department)
        self.db.flush()
        logger.info(f"Department deleted: {department_id}")
