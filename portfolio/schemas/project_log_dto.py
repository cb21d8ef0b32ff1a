from typing import Any, Dict, Optional

from portfolio.models.project_log import ProjectLog
from portfolio.schemas.base_dto import BaseDTO, enum_value
from portfolio.services.project_log_service import change_value_to_wire
from portfolio.utils.date_utils import to_iso_string


def changes_to_wire(changes: Optional[dict]) -> Dict[str, Dict[str, Any]]:
    '''{"status": {"from": tagged, "to": tagged}} -> {"status": {"from", "to", "fromKind", "toKind"}}'''
    wire = {}
    for field, pair in (changes or {}).items():
        if not isinstance(pair, dict):
            value, kind = change_value_to_wire(pair)
            wire[field] = {"from": None, "to": value, "fromKind": "scalar", "toKind": kind}
            continue
        from_value, from_kind = change_value_to_wire(pair.get("from"))
        to_value, to_kind = change_value_to_wire(pair.get("to"))
        wire[field] = {
            "from": from_value,
            "to": to_value,
            "fromKind": from_kind,
            "toKind": to_kind,
        }
    return wire


class ProjectLogDTO(BaseDTO):
    id: str
    project_id: str
    action: str
    description: str
    changes: Dict[str, Dict[str, Any]] = {}
    note: Optional[str] = None
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_orm_model(cls, log: ProjectLog) -> "ProjectLogDTO":
        return cls(
            id=log.id,
            project_id=log.project_id,
            action=enum_value(log.action),
            description=log.description,
            changes=changes_to_wire(log.changes),
            note=log.note,
            created_by=log.created_by,
            created_by_name=log.created_by_name,
            created_at=to_iso_string(log.created_at),
        )
