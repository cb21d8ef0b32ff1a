# portfolio/routes/project.py
from flask import Blueprint, jsonify, request
from werkzeug.utils import secure_filename

from portfolio.db.session import get_session
from portfolio.errors import NotFoundError, ValidationError
from portfolio.routes.common import current_actor, json_body, require_login
from portfolio.schemas.project_dto import ProjectDTO, ProjectInput
from portfolio.schemas.project_log_dto import ProjectLogDTO
from portfolio.services.bulk_import_service import BulkImportService
from portfolio.services.project_log_service import ProjectLogService, build_change
from portfolio.services.project_service import ProjectService
from portfolio.services.user_service import UserService

project_bp = Blueprint('project', __name__, url_prefix='/api/projects')


def _projects_json(projects):
    return jsonify([ProjectDTO.from_orm_model(p).to_wire() for p in projects])


# ======================================================
# 📋 Collection
# ======================================================

@project_bp.route('', methods=['GET'])
def list_projects():
    """All projects; optional ?department=, ?status=, ?search="""
    db = get_session()
    try:
        project_service = ProjectService(db)
        search = request.args.get('search', '').strip()
        department = request.args.get('department', '').strip() or None
        status = request.args.get('status', '').strip() or None

        if search:
            projects = project_service.search_projects(search)
            if department:
                projects = [p for p in projects if p.department == department]
            if status:
                projects = [p for p in projects if p.status and p.status.value == status]
        else:
            projects = project_service.list_projects(department=department, status=status)
        return _projects_json(projects)
    finally:
        db.close()


@project_bp.route('', methods=['POST'])
def create_project():
    """Create a project and its PROJECT_CREATED log"""
    require_login()
    operator_id, operator_name = current_actor()
    data = ProjectInput.model_validate(json_body()).to_columns()

    db = get_session()
    try:
        project_service = ProjectService(db)
        project_log_service = ProjectLogService(db)

        project = project_service.create_project(data=data, operator_id=operator_id)
        db.commit()

        project_log_service.log_project_creation(
            project_id=project.id,
            project_title=project.project_title,
            operator_id=operator_id,
            operator_name=operator_name,
        )
        db.commit()
        return jsonify(ProjectDTO.from_orm_model(project).to_wire()), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/active', methods=['GET'])
def list_active_projects():
    db = get_session()
    try:
        return _projects_json(ProjectService(db).list_active_projects())
    finally:
        db.close()


@project_bp.route('/archived', methods=['GET'])
def list_archived_projects():
    db = get_session()
    try:
        return _projects_json(ProjectService(db).list_archived_projects())
    finally:
        db.close()


@project_bp.route('/mine', methods=['GET'])
def list_my_projects():
    """Non-archived projects where the logged-in user is the focal person"""
    require_login()
    db = get_session()
    try:
        user = UserService(db).get_user_by_id(current_actor()[0])
        if not user:
            raise NotFoundError("User", current_actor()[0])
        return _projects_json(ProjectService(db).list_projects_for_focal(user.name))
    finally:
        db.close()


@project_bp.route('/bulk-import', methods=['POST'])
def bulk_import():
    """
    Import many projects. Accepts {"projects": [...]} or a multipart
    upload of an .xlsx / .csv sheet in the "file" field.
    """
    require_login()
    operator_id, operator_name = current_actor()

    db = get_session()
    try:
        project_service = ProjectService(db)
        project_log_service = ProjectLogService(db)
        bulk_import_service = BulkImportService(db, project_service, project_log_service)

        upload = request.files.get('file')
        if upload is not None:
            records = bulk_import_service.read_spreadsheet(secure_filename(upload.filename or ''), upload.read())
        else:
            records = json_body().get('projects')

        if not isinstance(records, list) or not records:
            raise ValidationError("Invalid request. Expected an array of projects.")

        result = bulk_import_service.import_projects(
            records,
            operator_id=operator_id,
            operator_name=operator_name,
        )
        return jsonify(result.to_dict())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ======================================================
# 📄 Single project
# ======================================================

@project_bp.route('/<project_id>', methods=['GET'])
def get_project(project_id):
    db = get_session()
    try:
        project = ProjectService(db).get_project(project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return jsonify(ProjectDTO.from_orm_model(project).to_wire())
    finally:
        db.close()


@project_bp.route('/<project_id>', methods=['PUT'])
def update_project(project_id):
    """Merge-update a project, then write status / sub-status / field logs"""
    require_login()
    operator_id, operator_name = current_actor()
    submitted = ProjectInput.model_validate(json_body()).to_columns()

    db = get_session()
    try:
        project_service = ProjectService(db)
        project_log_service = ProjectLogService(db)

        # 1️⃣ snapshot for the diff
        existing = project_service.get_project(project_id)
        if not existing:
            raise NotFoundError("Project", project_id)
        before = project_service.snapshot(existing)
        # a departmentId-only body still changes the department name
        project_service.resolve_department(submitted)

        # 2️⃣ project write
        project = project_service.update_project(project_id, data=submitted)
        db.commit()

        # 3️⃣ log write
        project_log_service.log_project_changes(
            project_id=project_id,
            before=before,
            submitted=submitted,
            operator_id=operator_id,
            operator_name=operator_name,
        )
        db.commit()
        return jsonify(ProjectDTO.from_orm_model(project).to_wire())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/<project_id>', methods=['DELETE'])
def delete_project(project_id):
    require_login()
    db = get_session()
    try:
        ProjectService(db).delete_project(project_id)
        db.commit()
        return '', 204
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ======================================================
# 🗄️ Archive
# ======================================================

def _set_archived(project_id: str, archived: bool):
    require_login()
    operator_id, operator_name = current_actor()

    db = get_session()
    try:
        project_service = ProjectService(db)
        project_log_service = ProjectLogService(db)

        existing = project_service.get_project(project_id)
        if not existing:
            raise NotFoundError("Project", project_id)
        was_archived = bool(existing.is_archived)

        if archived:
            project = project_service.archive_project(project_id, operator_id=operator_id)
        else:
            project = project_service.unarchive_project(project_id)
        db.commit()

        if was_archived != archived:
            project_log_service.log_project_update(
                project_id=project_id,
                description="Project archived" if archived else "Project restored from archive",
                changes={"isArchived": build_change(was_archived, archived)},
                operator_id=operator_id,
                operator_name=operator_name,
            )
            db.commit()
        return jsonify(ProjectDTO.from_orm_model(project).to_wire())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/<project_id>/archive', methods=['POST'])
def archive_project(project_id):
    return _set_archived(project_id, True)


@project_bp.route('/<project_id>/archive', methods=['DELETE'])
def unarchive_project(project_id):
    return _set_archived(project_id, False)


# ======================================================
# 📝 Project logs
# ======================================================

@project_bp.route('/<project_id>/logs', methods=['GET'])
def list_project_logs(project_id):
    db = get_session()
    try:
        logs = ProjectLogService(db).get_project_logs(project_id)
        return jsonify([ProjectLogDTO.from_orm_model(log).to_wire() for log in logs])
    finally:
        db.close()


@project_bp.route('/<project_id>/logs', methods=['POST'])
def create_project_log(project_id):
    require_login()
    operator_id, operator_name = current_actor()
    body = json_body()

    db = get_session()
    try:
        log = ProjectLogService(db).record_client_log(
            project_id=project_id,
            action=body.get('action'),
            description=body.get('description'),
            raw_changes=body.get('changes'),
            note=body.get('note'),
            operator_id=operator_id,
            operator_name=operator_name,
        )
        db.commit()
        return jsonify(ProjectLogDTO.from_orm_model(log).to_wire()), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/<project_id>/logs', methods=['DELETE'])
def delete_project_logs(project_id):
    """?logId= deletes one log, otherwise every log of the project"""
    require_login()
    log_id = request.args.get('logId', '').strip()

    db = get_session()
    try:
        project_log_service = ProjectLogService(db)
        if log_id:
            project_log_service.delete_log(log_id, project_id=project_id)
            db.commit()
            return jsonify({"success": True, "deleted": 1, "message": f"Log {log_id} deleted successfully"})

        deleted = project_log_service.delete_all_project_logs(project_id)
        return jsonify({
            "success": True,
            "deleted": deleted,
            "message": f"{deleted} logs deleted for project {project_id}",
        })
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
