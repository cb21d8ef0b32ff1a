# portfolio/routes/team.py
from flask import Blueprint, jsonify, request

from portfolio.db.session import get_session
from portfolio.errors import ValidationError
from portfolio.routes.common import current_actor, json_body, require_admin, store_user_in_session
from portfolio.schemas.user_dto import TeamMemberDTO, UserDTO, UserInput
from portfolio.services.user_service import UserService

team_bp = Blueprint('team', __name__, url_prefix='/api/team')


@team_bp.route('', methods=['GET'])
def list_team():
    """Team members with the projects they are focal person for"""
    db = get_session()
    try:
        team = UserService(db).list_team()
        return jsonify([TeamMemberDTO.from_orm_model(user, projects).to_wire() for user, projects in team])
    finally:
        db.close()


@team_bp.route('', methods=['POST'])
def create_member():
    require_admin()
    data = UserInput.model_validate(json_body())
    if not data.name or not data.email or not data.password:
        raise ValidationError("Missing required fields", details={"required": ["name", "email", "password"]})

    db = get_session()
    try:
        user = UserService(db).create_user(
            name=data.name,
            email=data.email,
            password=data.password,
            role=data.role,
            department=data.department,
            department_id=data.department_id,
            phone=data.phone,
            job_title=data.job_title,
            bio=data.bio,
        )
        db.commit()
        return jsonify(UserDTO.from_orm_model(user).to_wire()), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@team_bp.route('', methods=['PUT'])
def update_member():
    """Id in the body; a name change is pushed to projects.opd_focal"""
    require_admin()
    body = json_body()
    user_id = body.get('id')
    if not user_id:
        raise ValidationError("Missing user ID")
    changes = UserInput.model_validate(body).to_columns()
    if not changes.get('password'):
        changes.pop('password', None)

    db = get_session()
    try:
        user, cascade = UserService(db).update_user(user_id, changes=changes)
        # later log entries read the actor name from the session
        if user.id == current_actor()[0]:
            store_user_in_session(user)
        payload = UserDTO.from_orm_model(user).to_wire()
        if cascade is not None:
            payload["projectsUpdated"] = len(cascade.succeeded)
            payload["projectsFailed"] = len(cascade.failed)
        return jsonify(payload)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@team_bp.route('', methods=['DELETE'])
def delete_member():
    require_admin()
    user_id = request.args.get('id', '').strip()
    if not user_id:
        raise ValidationError("Missing user ID")

    db = get_session()
    try:
        UserService(db).delete_user(user_id=user_id)
        db.commit()
        return jsonify({"success": True})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
