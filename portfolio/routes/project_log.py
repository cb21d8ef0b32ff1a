# portfolio/routes/project_log.py
from flask import Blueprint, jsonify, request

from portfolio.db.session import get_session
from portfolio.routes.common import require_login
from portfolio.schemas.project_log_dto import ProjectLogDTO
from portfolio.services.project_log_service import ProjectLogService

log_bp = Blueprint('log', __name__, url_prefix='/api/logs')


@log_bp.route('', methods=['GET'])
def list_logs():
    """Activity across all projects, newest first; optional ?limit="""
    require_login()
    limit = request.args.get('limit', type=int)

    db = get_session()
    try:
        logs = ProjectLogService(db).get_all_logs(limit=limit)
        return jsonify([ProjectLogDTO.from_orm_model(log).to_wire() for log in logs])
    finally:
        db.close()
