# portfolio/services/user_service.py
from uuid import uuid4
from typing import Any, Dict, List, Optional, Tuple
import bcrypt
from sqlalchemy.orm import Session

from portfolio.db.enums import UserRole
from portfolio.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from portfolio.logger import get_logger
from portfolio.models.department import Department
from portfolio.models.project import Project
from portfolio.models.user import User
from portfolio.services.project_service import FanOutResult, ProjectService
from portfolio.utils.date_utils import utcnow

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

# columns a caller may change through update_user
EDITABLE_FIELDS = {"name", "email", "role", "department", "department_id", "phone", "bio", "job_title"}


class UserService:
    """
    User store.
    Provides:
    - registration / authentication
    - profile and team-member updates
    - password change
    - focal-person rename cascade onto projects (through ProjectService)
    """

    def __init__(self, db: Session, project_service: Optional[ProjectService] = None):
        self.db = db
        self.project_service = project_service or ProjectService(db)

    # ======================================================
    # 🔐 Internal helpers
    # ======================================================

    def _hash_password(self, password: str) -> str:
        '''Hash a password using bcrypt'''
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(),
        ).decode("utf-8")

    def _verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        '''verify a password against its hash'''
        if not password_hash:
            return False
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    def _check_email_free(self, email: str, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(User).filter(User.email == email.lower())
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Email already exists", details={"email": email})

    def _require(self, user_id: str) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def _department_name(self, department_id: Optional[str]) -> Optional[str]:
        if not department_id:
            return None
        department = self.db.get(Department, department_id)
        return department.name if department else None

    # ======================================================
    # 👤 User CRUD
    # ======================================================

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Optional[UserRole] = None,
        department: Optional[str] = None,
        department_id: Optional[str] = None,
        phone: Optional[str] = None,
        job_title: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        """
        Register a new user.

        :param name: Display name, also used as projects.opd_focal
        :type name: str
        :param email: Login email (unique)
        :type email: str
        :param password: Plaintext password
        :type password: str
        :param role: USER / ADMIN / PMO, defaults to USER
        :type role: Optional[UserRole]
        :param department: Department name
        :type department: Optional[str]
        :param department_id: Department ID
        :type department_id: Optional[str]
        """

        # 1️⃣ required fields
        if not name or not email or not password:
            raise ValidationError("Missing required fields", details={"required": ["name", "email", "password"]})

        # 2️⃣ email uniqueness
        email = email.strip().lower()
        self._check_email_free(email)

        # 3️⃣ create
        now = utcnow()
        user = User(
            id=str(uuid4()),
            name=name,
            email=email,
            password_hash=self._hash_password(password),
            role=role or UserRole.USER,
            department=department or self._department_name(department_id),
            department_id=department_id,
            phone=phone,
            job_title=job_title,
            bio=bio,
            created_at=now,
            updated_at=now,
        )

        self.db.add(user)
        self.db.flush()
        logger.info(f"User created: {user.id} ({user.email})")

        return user

    def authenticate(
        self,
        *,
        email: str,
        password: str,
    ) -> User:
        """
        Authenticate user by email + password.
        Returns User if successful.

        :param email: Login email
        :type email: str
        :param password: Plaintext password
        :type password: str
        """

        user = self.get_user_by_email(email)

        if not user or not self._verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return (
            self.db.query(User)
            .filter(User.email == email.strip().lower())
            .first()
        )

    def list_users(
        self,
        *,
        department_id: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> List[User]:
        query = self.db.query(User)
        if department_id:
            query = query.filter(User.department_id == department_id)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.name).all()

    def list_team(self) -> List[Tuple[User, List[Project]]]:
        '''Every user with the projects naming them as focal person (archived included).'''
        projects_by_focal: Dict[str, List[Project]] = {}
        for project in self.db.query(Project).filter(Project.opd_focal.isnot(None)).all():
            projects_by_focal.setdefault(project.opd_focal, []).append(project)
        return [(user, projects_by_focal.get(user.name, [])) for user in self.list_users()]

    # ======================================================
    # 🔁 Account maintenance
    # ======================================================

    def update_user(
        self,
        user_id: str,
        *,
        changes: Dict[str, Any],
    ) -> Tuple[User, Optional[FanOutResult]]:
        """
        Apply a partial update. A supplied password is re-hashed.

        The user row is committed first; if the name changed, the new name is
        then pushed to every project that names the old one. Cascade failures
        are logged and returned, never raised.

        :param user_id: User to update
        :type user_id: str
        :param changes: Column-keyed values (plus optional "password")
        :type changes: Dict[str, Any]
        :return: (updated user, cascade result or None when the name did not change)
        :rtype: Tuple[User, Optional[FanOutResult]]
        """
        changes = dict(changes)
        user = self._require(user_id)
        old_name = user.name

        # 1️⃣ validate
        if "name" in changes and not changes["name"]:
            raise ValidationError("Name is required")
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()
            self._check_email_free(changes["email"], exclude_id=user_id)
        elif "email" in changes:
            raise ValidationError("Email is required")
        password = changes.pop("password", None)
        if password is not None and len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        # 2️⃣ apply
        for field, value in changes.items():
            if field not in EDITABLE_FIELDS:
                continue
            if field == "role" and value is None:
                continue
            setattr(user, field, value)
        if "department_id" in changes and "department" not in changes:
            user.department = self._department_name(changes["department_id"])
        if password:
            user.password_hash = self._hash_password(password)
        user.updated_at = utcnow()

        # 3️⃣ commit the user before touching projects
        self.db.commit()
        logger.info(f"User updated: {user.id}")

        # 4️⃣ cascade
        cascade = None
        if user.name != old_name:
            cascade = self.project_service.rename_focal_person(old_name=old_name, new_name=user.name)
            if not cascade.complete:
                logger.warning(
                    f"User {user.id} renamed but {len(cascade.failed)} project(s) still reference '{old_name}'"
                )
        return user, cascade

    def change_password(
        self,
        *,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Change a password after verifying the current one.

        :param user_id: ID of the user
        :type user_id: str
        :param current_password: Current plaintext password
        :type current_password: str
        :param new_password: New plaintext password
        :type new_password: str
        """
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")

        user = self._require(user_id)
        if not self._verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = self._hash_password(new_password)
        user.updated_at = utcnow()
        self.db.flush()

    def delete_user(self, *, user_id: str) -> None:
        user = self._require(user_id)
        self.db.delete(user)
        self.db.flush()
        logger.info(f"User deleted: {user_id}")
