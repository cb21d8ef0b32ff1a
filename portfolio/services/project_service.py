# portfolio/services/project_service.py
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy.orm import Session

from portfolio.db.enums import ProjectStatus
from portfolio.errors import NotFoundError, ValidationError
from portfolio.logger import get_logger
from portfolio.models.department import Department
from portfolio.models.project import Project
from portfolio.schemas.base_dto import to_wire_name
from portfolio.utils.date_utils import to_epoch_millis, utcnow

logger = get_logger(__name__)

# fields a create through the API must carry
REQUIRED_ON_CREATE = ("project_title", "drivers", "type", "opd_focal", "department")

# columns that are never taken from request data
PROTECTED_FIELDS = {
    "id", "created_at", "updated_at", "created_by",
    "is_archived", "archived_at", "archived_by",
}


@dataclass
class FanOutResult:
    """Outcome of a best-effort multi-row write."""

    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


class ProjectService:
    """
    Project store.

    Writes are flushed, never committed; the caller owns the transaction.
    The focal-person rename cascade is the exception: it commits per project.
    """

    def __init__(self, db: Session):
        self.db = db

    # ======================================================
    # 🔧 Internal helpers
    # ======================================================

    @staticmethod
    def compute_savings(budget: Optional[float], award_amount: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
        '''
        savings = budget - award_amount; percentage = savings / budget * 100 (2 dp).

        :return: (savings_omr, savings_percentage), both None when either input is missing
        :rtype: Tuple[Optional[float], Optional[float]]
        '''
        if budget is None or award_amount is None:
            return None, None
        savings = float(budget) - float(award_amount)
        percentage = round(savings / float(budget) * 100, 2) if budget else 0
        return savings, percentage

    def _apply_savings(self, project: Project) -> None:
        # savings follow budget and award_amount, cleared when either is missing
        project.savings_omr, project.savings_percentage = self.compute_savings(
            project.budget, project.award_amount
        )

    def resolve_department(self, data: Dict[str, Any]) -> None:
        '''Fill the department name from department_id in place, unless a name was sent.'''
        if data.get("department_id") and not data.get("department"):
            department = self.db.get(Department, data["department_id"])
            if department:
                data["department"] = department.name

    @staticmethod
    def _check_required(data: Dict[str, Any], required: Iterable[str]) -> None:
        for name in required:
            value = data.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(
                    f"{to_wire_name(name)} is required",
                    details={to_wire_name(name): "required"},
                )

    @staticmethod
    def snapshot(project: Project) -> Dict[str, Any]:
        '''Plain dict copy of every column, taken before an update.'''
        return {
            column.key: getattr(project, column.key)
            for column in Project.__table__.columns
        }

    def _require(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    # ======================================================
    # 📖 Reads
    # ======================================================

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.db.get(Project, project_id)

    def list_projects(
        self,
        *,
        department: Optional[str] = None,
        status: Optional[str] = None,
        department_id: Optional[str] = None,
    ) -> List[Project]:
        query = self.db.query(Project)
        if department:
            query = query.filter(Project.department == department)
        if status:
            try:
                query = query.filter(Project.status == ProjectStatus(status))
            except ValueError:
                raise ValidationError(
                    "Invalid status value",
                    details={"status": [s.value for s in ProjectStatus]},
                )
        if department_id:
            query = query.filter(Project.department_id == department_id)
        return query.order_by(Project.created_at.desc()).all()

    def list_active_projects(self) -> List[Project]:
        return [p for p in self.list_projects() if not p.is_archived]

    def list_archived_projects(self) -> List[Project]:
        return [p for p in self.list_projects() if p.is_archived]

    def list_projects_for_focal(self, name: str, *, include_archived: bool = False) -> List[Project]:
        projects = (
            self.db.query(Project)
            .filter(Project.opd_focal == name)
            .all()
        )
        if not include_archived:
            projects = [p for p in projects if not p.is_archived]
        projects.sort(key=lambda p: to_epoch_millis(p.created_at) or 0, reverse=True)
        return projects

    def search_projects(self, term: str) -> List[Project]:
        '''Case-insensitive substring match over title, department, focal person, area and status.'''
        needle = (term or "").strip().lower()
        if not needle:
            return self.list_projects()

        def haystack(p: Project) -> str:
            status = p.status.value if p.status else ""
            return " ".join(
                (v or "") for v in (p.project_title, p.department, p.opd_focal, p.area, status)
            ).lower()

        return [p for p in self.list_projects() if needle in haystack(p)]

    # ======================================================
    # ✍️ Writes
    # ======================================================

    def create_project(
        self,
        *,
        data: Dict[str, Any],
        operator_id: Optional[str],
        required: Iterable[str] = REQUIRED_ON_CREATE,
    ) -> Project:
        """
        Create a project from column-keyed data.

        :param data: Values keyed by column name (see ProjectInput.to_columns)
        :type data: Dict[str, Any]
        :param operator_id: User ID of the creator
        :type operator_id: Optional[str]
        :param required: Columns that must be non-empty
        :type required: Iterable[str]
        """
        data = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}

        # 1️⃣ required fields; a department_id stands in for the department name
        self.resolve_department(data)
        self._check_required(data, required)

        # 2️⃣ defaults
        now = utcnow()
        data.setdefault("status", ProjectStatus.Possible)
        if data["status"] is None:
            data["status"] = ProjectStatus.Possible
        if data.get("percentage") is None:
            data["percentage"] = 0

        # 3️⃣ create
        project = Project(
            id=str(uuid4()),
            created_by=operator_id,
            created_at=now,
            updated_at=now,
            is_archived=False,
            **data,
        )
        self._apply_savings(project)

        self.db.add(project)
        self.db.flush()
        logger.info(f"Project created: {project.id} ({project.project_title})")
        return project

    def update_project(self, project_id: str, *, data: Dict[str, Any]) -> Project:
        """
        Merge submitted columns into an existing project.

        :param project_id: Project to update
        :type project_id: str
        :param data: Submitted values keyed by column name; absent keys are left untouched
        :type data: Dict[str, Any]
        """
        # 1️⃣ existence is checked before any write
        project = self._require(project_id)

        data = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        if "project_title" in data:
            self._check_required(data, ("project_title",))
        if "status" in data and data["status"] is None:
            data.pop("status")
        self.resolve_department(data)

        # 2️⃣ status change stamps status_change_date
        now = utcnow()
        new_status = data.get("status")
        if new_status and new_status != project.status and not data.get("status_change_date"):
            data["status_change_date"] = now

        # 3️⃣ merge
        for name, value in data.items():
            setattr(project, name, value)
        self._apply_savings(project)
        project.updated_at = now

        self.db.flush()
        logger.info(f"Project updated: {project.id} fields={sorted(data)}")
        return project

    def delete_project(self, project_id: str) -> None:
        project = self._require(project_id)
        self.db.delete(project)
        self.db.flush()
        logger.info(f"Project deleted: {project_id}")

    def archive_project(self, project_id: str, *, operator_id: Optional[str]) -> Project:
        project = self._require(project_id)
        now = utcnow()
        project.is_archived = True
        project.archived_at = now
        project.archived_by = operator_id
        project.updated_at = now
        self.db.flush()
        logger.info(f"Project archived: {project_id} by {operator_id}")
        return project

    def unarchive_project(self, project_id: str) -> Project:
        project = self._require(project_id)
        project.is_archived = False
        project.archived_at = None
        project.archived_by = None
        project.updated_at = utcnow()
        self.db.flush()
        logger.info(f"Project unarchived: {project_id}")
        return project

    # ======================================================
    # 🔁 Focal person rename cascade
    # ======================================================

    def _rename_focal_on_project(self, project_id: str, old_name: str, new_name: str) -> int:
        # conditional on the old value, so re-running after success changes nothing
        return (
            self.db.query(Project)
            .filter(Project.id == project_id, Project.opd_focal == old_name)
            .update(
                {Project.opd_focal: new_name, Project.updated_at: utcnow()},
                synchronize_session=False,
            )
        )

    def rename_focal_person(self, *, old_name: str, new_name: str) -> FanOutResult:
        '''
        Replace ``opd_focal`` on every project that names ``old_name``.

        Each project is updated and committed on its own. A failure is logged
        and recorded in the result; the remaining projects are still updated.

        :param old_name: Previous user name
        :type old_name: str
        :param new_name: New user name
        :type new_name: str
        :rtype: FanOutResult
        '''
        result = FanOutResult()
        if not old_name or old_name == new_name:
            return result

        project_ids = [
            row.id for row in
            self.db.query(Project.id).filter(Project.opd_focal == old_name).all()
        ]
        for project_id in project_ids:
            try:
                self._rename_focal_on_project(project_id, old_name, new_name)
                self.db.commit()
                result.succeeded.append(project_id)
            except Exception:
                self.db.rollback()
                logger.exception(f"Failed to rename focal person on project {project_id}")
                result.failed.append(project_id)
        self.db.expire_all()

        logger.info(
            f"Focal rename '{old_name}' -> '{new_name}': "
            f"{len(result.succeeded)} updated, {len(result.failed)} failed"
        )
        return result
