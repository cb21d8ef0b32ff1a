# portfolio/services/project_log_service.py
import math
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from sqlalchemy import DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio.db.enums import ChangeValueKind, ProjectLogAction
from portfolio.errors import NotFoundError, ValidationError
from portfolio.logger import get_logger
from portfolio.models.project import Project
from portfolio.models.project_log import ProjectLog
from portfolio.schemas.base_dto import to_wire_name
from portfolio.utils.date_utils import format_date, to_epoch_millis, to_iso_string, utcnow

logger = get_logger(__name__)


# ======================================================
# 🏷️ Tagged change values
# ======================================================

def _date_columns() -> set:
    return {
        column.key
        for column in Project.__table__.columns
        if isinstance(column.type, DateTime)
    }


def serialize_change_value(value: Any, *, is_date: bool = False) -> dict:
    '''
    Tag a raw from/to value at write time so readers never sniff its shape.

    :param value: Old or new field value
    :type value: Any
    :param is_date: Whether the field is a date column
    :type is_date: bool
    :return: {"kind": "scalar" | "date" | "unknown", "value": ...}
    :rtype: dict
    '''
    if value is None:
        return {"kind": ChangeValueKind.scalar.value, "value": None}
    if isinstance(value, (datetime, date)) or (is_date and value != ""):
        millis = to_epoch_millis(value)
        if millis is not None:
            return {"kind": ChangeValueKind.date.value, "value": millis}
        return {"kind": ChangeValueKind.unknown.value, "value": str(value)}
    if isinstance(value, Enum):
        return {"kind": ChangeValueKind.scalar.value, "value": value.value}
    if isinstance(value, Decimal):
        return {"kind": ChangeValueKind.scalar.value, "value": float(value)}
    if isinstance(value, float) and not math.isfinite(value):
        return {"kind": ChangeValueKind.unknown.value, "value": str(value)}
    if isinstance(value, (bool, int, float, str)):
        return {"kind": ChangeValueKind.scalar.value, "value": value}
    return {"kind": ChangeValueKind.unknown.value, "value": str(value)}


def _is_tagged(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and set(value.keys()) == {"kind", "value"}
        and value["kind"] in {k.value for k in ChangeValueKind}
    )


def change_value_to_wire(value: Any) -> Tuple[Any, str]:
    '''
    Read side of the tagged union: returns (display value, kind).
    Untagged values written before tagging are passed through as-is.
    '''
    if _is_tagged(value):
        kind = value["kind"]
        if kind == ChangeValueKind.date.value:
            return to_iso_string(value["value"]), kind
        return value["value"], kind
    if value is None or isinstance(value, (bool, int, float, str)):
        return value, ChangeValueKind.scalar.value
    return value, ChangeValueKind.unknown.value


def build_change(old: Any, new: Any, *, is_date: bool = False) -> dict:
    return {
        "from": serialize_change_value(old, is_date=is_date),
        "to": serialize_change_value(new, is_date=is_date),
    }


def _display(tagged: dict) -> str:
    value, kind = change_value_to_wire(tagged)
    if kind == ChangeValueKind.date.value:
        return format_date(tagged["value"], "short")
    return "" if value is None else str(value)


class ProjectLogService:
    """
    The only place ProjectLog rows are created or deleted.
    Entries are never updated once written.
    """

    def __init__(self, db: Session):
        self.db = db

    # ======================================================
    # ✍️ Write path
    # ======================================================

    def record_change(
        self,
        *,
        project_id: str,
        action: Union[str, ProjectLogAction],
        description: str,
        changes: Optional[Dict[str, dict]] = None,
        operator_id: Optional[str] = None,
        operator_name: Optional[str] = None,
        note: Optional[str] = None,
    ) -> ProjectLog:
        '''
        Persist exactly one log entry.

        :param project_id: Project the entry belongs to
        :type project_id: str
        :param action: ProjectLogAction or its string value
        :type action: Union[str, ProjectLogAction]
        :param description: Human readable summary
        :type description: str
        :param changes: wire field name -> {"from": tagged, "to": tagged}
        :type changes: Optional[Dict[str, dict]]
        :param operator_id: Actor user ID
        :type operator_id: Optional[str]
        :param operator_name: Actor display name
        :type operator_name: Optional[str]
        :param note: Optional user note
        :type note: Optional[str]
        :return: The new ProjectLog
        :rtype: ProjectLog
        '''
        # 1️⃣ required fields
        if not project_id:
            raise ValidationError("projectId is required")
        if not action:
            raise ValidationError("action is required")
        if not description:
            raise ValidationError("description is required")
        try:
            action = ProjectLogAction(action) if not isinstance(action, ProjectLogAction) else action
        except ValueError:
            raise ValidationError(
                f"Invalid action: {action}",
                details={"action": [a.value for a in ProjectLogAction]},
            )

        # 2️⃣ write
        log = ProjectLog(
            id=str(uuid4()),
            project_id=project_id,
            action=action,
            description=description,
            changes=changes or {},
            note=note or None,
            created_by=operator_id,
            created_by_name=operator_name,
            created_at=utcnow(),
        )
        self.db.add(log)
        self.db.flush()
        logger.info(f"Project log {action.value} recorded for project {project_id}")
        return log

    def record_client_log(
        self,
        *,
        project_id: str,
        action: str,
        description: str,
        raw_changes: Optional[dict],
        note: Optional[str],
        operator_id: Optional[str],
        operator_name: Optional[str],
    ) -> ProjectLog:
        '''Log entry posted directly by a client; raw {from, to} pairs are tagged here.'''
        date_fields = {to_wire_name(name) for name in _date_columns()}
        changes = {}
        for field, pair in (raw_changes or {}).items():
            if not isinstance(pair, dict):
                raise ValidationError(f"changes.{field} must be an object with from/to")
            changes[field] = build_change(
                pair.get("from"), pair.get("to"), is_date=field in date_fields
            )
        return self.record_change(
            project_id=project_id,
            action=action,
            description=description,
            changes=changes,
            operator_id=operator_id,
            operator_name=operator_name,
            note=note,
        )

    def log_status_change(
        self,
        *,
        project_id: str,
        from_status: Any,
        to_status: Any,
        note: Optional[str] = None,
        operator_id: Optional[str] = None,
        operator_name: Optional[str] = None,
    ) -> ProjectLog:
        change = build_change(from_status, to_status)
        return self.record_change(
            project_id=project_id,
            action=ProjectLogAction.STATUS_CHANGE,
            description=f'Status changed from "{_display(change["from"])}" to "{_display(change["to"])}"',
            changes={"status": change},
            note=note,
            operator_id=operator_id,
            operator_name=operator_name,
        )

    def log_sub_status_change(
        self,
        *,
        project_id: str,
        from_sub_status: Optional[str],
        to_sub_status: Optional[str],
        operator_id: Optional[str] = None,
        operator_name: Optional[str] = None,
    ) -> ProjectLog:
        change = build_change(from_sub_status or "", to_sub_status or "")
        return self.record_change(
            project_id=project_id,
            action=ProjectLogAction.SUBSTATUS_CHANGE,
            description=f'Sub-status changed from "{_display(change["from"])}" to "{_display(change["to"])}"',
            changes={"subStatus": change},
            operator_id=operator_id,
            operator_name=operator_name,
        )

    def log_project_creation(
        self,
        *,
        project_id: str,
        project_title: str,
        operator_id: Optional[str] = None,
        operator_name: Optional[str] = None,
    ) -> ProjectLog:
        return self.record_change(
            project_id=project_id,
            action=ProjectLogAction.PROJECT_CREATED,
            description=f'Project "{project_title}" was created',
            changes={},
            operator_id=operator_id,
            operator_name=operator_name,
        )

    def log_project_update(
        self,
        *,
        project_id: str,
        description: str,
        changes: Dict[str, dict],
        operator_id: Optional[str] = None,
        operator_name: Optional[str] = None,
    ) -> ProjectLog:
        return self.record_change(
            project_id=project_id,
            action=ProjectLogAction.PROJECT_UPDATED,
            description=description,
            changes=changes,
            operator_id=operator_id,
            operator_name=operator_name,
        )

    # ======================================================
    # 🔍 Diffing
    # ======================================================

    @staticmethod
    def _comparable(value: Any, is_date: bool) -> Any:
        if value is None:
            return None
        if is_date:
            return to_epoch_millis(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float, Decimal)):
            return float(value)
        return value

    def diff_significant_fields(
        self,
        before: Dict[str, Any],
        submitted: Dict[str, Any],
    ) -> Dict[str, dict]:
        '''
        Compare submitted values against the snapshot for every loggable column.
        Fields the client did not send are ignored.

        :param before: Project snapshot keyed by column name
        :type before: Dict[str, Any]
        :param submitted: Submitted values keyed by column name
        :type submitted: Dict[str, Any]
        :return: wire field name -> tagged change
        :rtype: Dict[str, dict]
        '''
        date_columns = _date_columns()
        changes = {}
        for field in Project.loggable_fields():
            if field not in submitted:
                continue
            is_date = field in date_columns
            old, new = before.get(field), submitted[field]
            if self._comparable(old, is_date) == self._comparable(new, is_date):
                continue
            changes[to_wire_name(field)] = build_change(old, new, is_date=is_date)
        return changes

    def log_project_changes(
        self,
        *,
        project_id: str,
        before: Dict[str, Any],
        submitted: Dict[str, Any],
        operator_id: Optional[str] = None,
        operator_name: Optional[str] = None,
    ) -> List[ProjectLog]:
        '''
        Write the log entries one project update produces:
        status change, sub-status change, then one PROJECT_UPDATED for the
        remaining loggable fields. Nothing is written when nothing changed,
        so replaying the same update adds no entries.
        '''
        logs = []

        # 1️⃣ status
        new_status = submitted.get("status")
        old_status = before.get("status")
        if new_status and self._comparable(new_status, False) != self._comparable(old_status, False):
            logs.append(self.log_status_change(
                project_id=project_id,
                from_status=old_status,
                to_status=new_status,
                note=submitted.get("status_change_note"),
                operator_id=operator_id,
                operator_name=operator_name,
            ))

        # 2️⃣ sub status
        if "sub_status" in submitted and (submitted["sub_status"] or None) != (before.get("sub_status") or None):
            logs.append(self.log_sub_status_change(
                project_id=project_id,
                from_sub_status=before.get("sub_status"),
                to_sub_status=submitted["sub_status"],
                operator_id=operator_id,
                operator_name=operator_name,
            ))

        # 3️⃣ other significant fields
        changes = self.diff_significant_fields(before, submitted)
        if changes:
            parts = [
                f'{field}: "{_display(change["from"])}" → "{_display(change["to"])}"'
                for field, change in changes.items()
            ]
            logs.append(self.log_project_update(
                project_id=project_id,
                description=f"Project updated: {', '.join(parts)}",
                changes=changes,
                operator_id=operator_id,
                operator_name=operator_name,
            ))
        return logs

    # ======================================================
    # 📖 Read path
    # ======================================================

    def get_log(self, log_id: str) -> Optional[ProjectLog]:
        return self.db.get(ProjectLog, log_id)

    def get_project_logs(self, project_id: str) -> List[ProjectLog]:
        '''
        Logs of one project, newest first. Sorting happens in memory so the
        query only needs the project_id filter; if that query fails the
        ordered query is used instead.
        '''
        try:
            logs = (
                self.db.query(ProjectLog)
                .filter(ProjectLog.project_id == project_id)
                .all()
            )
            return self._newest_first(logs)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Unordered log query failed for project {project_id}, retrying ordered: {e}")
            return (
                self.db.query(ProjectLog)
                .filter(ProjectLog.project_id == project_id)
                .order_by(ProjectLog.created_at.desc())
                .all()
            )

    @staticmethod
    def _newest_first(logs: List[ProjectLog]) -> List[ProjectLog]:
        with_time = [log for log in logs if to_epoch_millis(log.created_at) is not None]
        without_time = [log for log in logs if to_epoch_millis(log.created_at) is None]
        with_time.sort(key=lambda log: to_epoch_millis(log.created_at), reverse=True)
        return with_time + without_time

    def get_all_logs(self, limit: Optional[int] = None) -> List[ProjectLog]:
        query = self.db.query(ProjectLog).order_by(ProjectLog.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    # ======================================================
    # 🗑️ Delete path
    # ======================================================

    def delete_log(self, log_id: str, *, project_id: Optional[str] = None) -> None:
        '''Delete one entry; with ``project_id`` the entry must belong to that project.'''
        log = self.get_log(log_id)
        if not log or (project_id is not None and log.project_id != project_id):
            raise NotFoundError("Project log", log_id)
        self.db.delete(log)
        self.db.flush()

    def _delete_log_row(self, log_id: str) -> None:
        # deleting an already-deleted id is a no-op
        self.db.query(ProjectLog).filter(ProjectLog.id == log_id).delete(synchronize_session=False)

    def delete_all_project_logs(self, project_id: str) -> int:
        '''
        Delete every log of a project one row at a time, committing each.
        A failed row is logged and skipped.

        :return: number of rows deleted
        :rtype: int
        '''
        log_ids = [
            row.id for row in
            self.db.query(ProjectLog.id).filter(ProjectLog.project_id == project_id).all()
        ]
        deleted = 0
        for log_id in log_ids:
            try:
                self._delete_log_row(log_id)
                self.db.commit()
                deleted += 1
            except Exception:
                self.db.rollback()
                logger.exception(f"Failed to delete log {log_id} of project {project_id}")
        self.db.expire_all()
        if deleted < len(log_ids):
            logger.warning(f"Deleted {deleted}/{len(log_ids)} logs of project {project_id}")
        return deleted
