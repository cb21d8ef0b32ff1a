"""
Bulk project import.

Records arrive either as a JSON array or as rows of an uploaded
spreadsheet (.xlsx / .csv). Each record is validated, created and
logged on its own; a bad record is reported with its index and does not
stop the rest of the batch.
"""
import io
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from portfolio.db.enums import CapexOpex, ProjectStatus
from portfolio.errors import PortfolioError, ValidationError
from portfolio.logger import get_logger
from portfolio.schemas.base_dto import to_wire_name
from portfolio.schemas.project_dto import ProjectInput
from portfolio.services.project_log_service import ProjectLogService
from portfolio.services.project_service import ProjectService

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = {"xlsx", "csv"}


def _header_key(header: Any) -> str:
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


# "Project Title", "project_title", "projectTitle" -> "projectTitle"
HEADER_MAP = {_header_key(name): to_wire_name(name) for name in ProjectInput.model_fields}


def _error_message(error: Exception) -> str:
    if isinstance(error, PydanticValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()
        )
    if isinstance(error, PortfolioError):
        return error.message
    return str(error) or error.__class__.__name__


@dataclass
class BulkImportResult:
    results: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        body = {
            "success": True,
            "imported": len(self.results),
            "failed": len(self.errors),
            "results": self.results,
        }
        if self.errors:
            body["errors"] = self.errors
        return body


class BulkImportService:
    def __init__(
        self,
        db: Session,
        project_service: ProjectService,
        project_log_service: ProjectLogService,
    ):
        self.db = db
        self.project_service = project_service
        self.project_log_service = project_log_service

    # ======================================================
    # 📥 Spreadsheet parsing
    # ======================================================

    @staticmethod
    def allowed_file(filename: str) -> bool:
        return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS

    def read_spreadsheet(self, filename: str, content: bytes) -> List[Dict[str, Any]]:
        '''
        Parse an uploaded sheet into wire-keyed records.

        :param filename: Original file name, used for the extension
        :type filename: str
        :param content: Raw file bytes
        :type content: bytes
        :return: One dict per row, unknown columns dropped, blank cells as None
        :rtype: List[Dict[str, Any]]
        '''
        if not self.allowed_file(filename):
            raise ValidationError(
                "Unsupported file type",
                details={"allowed": sorted(ALLOWED_EXTENSIONS)},
            )

        ext = filename.rsplit(".", 1)[1].lower()
        try:
            if ext == "csv":
                df = pd.read_csv(io.BytesIO(content))
            else:
                df = pd.read_excel(io.BytesIO(content), engine="openpyxl")
        except Exception as e:
            raise ValidationError(f"Could not read spreadsheet: {e}") from e

        columns = {col: HEADER_MAP.get(_header_key(col)) for col in df.columns}
        known = [col for col, wire in columns.items() if wire]
        df = df[known].rename(columns=columns).dropna(how="all")
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict(orient="records")

    # ======================================================
    # 🚚 Import
    # ======================================================

    @staticmethod
    def _with_defaults(record: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(record)
        defaults = {
            "status": ProjectStatus.Possible.value,
            "capexOpex": CapexOpex.CAPEX.value,
            "type": "Planned",
            "year": datetime.now(timezone.utc).year,
            "percentage": 0,
        }
        for key, value in defaults.items():
            if data.get(key) in (None, ""):
                data[key] = value
        return data

    @staticmethod
    def _title_of(record: Dict[str, Any]) -> Optional[str]:
        title = record.get("projectTitle", record.get("project_title"))
        if title is None:
            return None
        return str(title).strip() or None

    def import_projects(
        self,
        records: List[Any],
        *,
        operator_id: Optional[str],
        operator_name: Optional[str],
    ) -> BulkImportResult:
        """
        Create projects one by one, each with its own commit and creation log.

        :param records: Wire-keyed project dicts
        :type records: List[Any]
        :param operator_id: Importing user ID
        :type operator_id: Optional[str]
        :param operator_name: Importing user name
        :type operator_name: Optional[str]
        :rtype: BulkImportResult
        """
        result = BulkImportResult()

        for index, record in enumerate(records):
            # 1️⃣ shallow validation, no side effects on failure
            if not isinstance(record, dict):
                result.errors.append({"index": index, "error": "Project must be an object", "data": record})
                continue
            if not self._title_of(record):
                result.errors.append({"index": index, "error": "Project title is required", "data": record})
                continue

            # 2️⃣ create + log, committed per record
            try:
                data = ProjectInput.model_validate(self._with_defaults(record)).to_columns()
                project = self.project_service.create_project(
                    data=data,
                    operator_id=operator_id,
                    required=("project_title",),
                )
                self.db.commit()
                self.project_log_service.log_project_creation(
                    project_id=project.id,
                    project_title=project.project_title,
                    operator_id=operator_id,
                    operator_name=operator_name,
                )
                self.db.commit()
                result.results.append({
                    "id": project.id,
                    "projectTitle": project.project_title,
                    "status": "success",
                })
            except Exception as e:
                self.db.rollback()
                logger.warning(f"Bulk import: record {index} failed: {_error_message(e)}")
                result.errors.append({"index": index, "error": _error_message(e), "data": record})

        logger.info(f"Bulk import finished: {len(result.results)} imported, {len(result.errors)} failed")
        return result
