# portfolio/routes/auth.py
from flask import Blueprint, jsonify, session

from portfolio.db.session import get_session
from portfolio.errors import ValidationError
from portfolio.logger import get_logger
from portfolio.routes.common import json_body, store_user_in_session
from portfolio.schemas.user_dto import UserDTO
from portfolio.services.user_service import UserService

logger = get_logger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Email + password login; stores the user in the server-side session"""
    body = json_body()
    email = (body.get('email') or '').strip()
    password = body.get('password') or ''

    if not email or not password:
        raise ValidationError("Email and password are required")

    db = get_session()
    try:
        user = UserService(db).authenticate(email=email, password=password)
        session.clear()
        store_user_in_session(user)
        logger.info(f"User logged in: {user.id}")
        return jsonify(UserDTO.from_orm_model(user).to_wire())
    finally:
        db.close()


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user_id = session.get('user_id')
    session.clear()
    if user_id:
        logger.info(f"User logged out: {user_id}")
    return jsonify({"success": True})


@auth_bp.route('/session', methods=['GET'])
def current_session():
    """The logged-in user, or {"user": null}"""
    if 'user_id' not in session:
        return jsonify({"user": None})
    return jsonify({
        "user": {
            "id": session.get('user_id'),
            "name": session.get('user_name'),
            "email": session.get('user_email'),
            "role": session.get('user_role'),
        }
    })
