# portfolio/routes/department.py
from flask import Blueprint, jsonify, request

from portfolio.db.session import get_session
from portfolio.errors import NotFoundError, ValidationError
from portfolio.routes.common import json_body, require_login
from portfolio.schemas.department_dto import DepartmentDetailDTO, DepartmentDTO, DepartmentInput
from portfolio.services.department_service import DepartmentService

department_bp = Blueprint('department', __name__, url_prefix='/api/departments')


@department_bp.route('', methods=['GET'])
def list_departments():
    """Departments with memberCount / projectCount / totalBudget"""
    db = get_session()
    try:
        departments = DepartmentService(db).list_departments()
        return jsonify([DepartmentDTO.from_orm_model(d, stats).to_wire() for d, stats in departments])
    finally:
        db.close()


@department_bp.route('', methods=['POST'])
def create_department():
    require_login()
    data = DepartmentInput.model_validate(json_body())

    db = get_session()
    try:
        department = DepartmentService(db).create_department(
            name=data.name,
            description=data.description,
            budget=data.budget,
        )
        db.commit()
        return jsonify(DepartmentDTO.from_orm_model(department).to_wire()), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _update(department_id: str, body: dict):
    changes = DepartmentInput.model_validate(body).to_columns()

    db = get_session()
    try:
        department = DepartmentService(db).update_department(department_id, changes=changes)
        db.commit()
        return jsonify(DepartmentDTO.from_orm_model(department).to_wire())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _delete(department_id: str):
    db = get_session()
    try:
        DepartmentService(db).delete_department(department_id)
        db.commit()
        return '', 204
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@department_bp.route('', methods=['PUT'])
def update_department_by_body():
    """Id in the body"""
    require_login()
    body = json_body()
    if not body.get('id'):
        raise ValidationError("Department ID is required")
    return _update(body['id'], body)


@department_bp.route('', methods=['DELETE'])
def delete_department_by_query():
    """?id="""
    require_login()
    department_id = request.args.get('id', '').strip()
    if not department_id:
        raise ValidationError("Department ID is required")
    return _delete(department_id)


@department_bp.route('/<department_id>', methods=['GET'])
def get_department(department_id):
    """One department with its users and projects"""
    db = get_session()
    try:
        detail = DepartmentService(db).get_department_detail(department_id)
        if not detail:
            raise NotFoundError("Department", department_id)
        department, users, projects = detail
        return jsonify(DepartmentDetailDTO.from_orm_model(department, users, projects).to_wire())
    finally:
        db.close()


@department_bp.route('/<department_id>', methods=['PATCH', 'PUT'])
def update_department(department_id):
    require_login()
    return _update(department_id, json_body())


@department_bp.route('/<department_id>', methods=['DELETE'])
def delete_department(department_id):
    require_login()
    return _delete(department_id)
