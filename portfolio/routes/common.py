# portfolio/routes/common.py
from typing import Optional, Tuple

from flask import request, session

from portfolio.db.enums import UserRole
from portfolio.errors import AuthenticationError, PermissionDeniedError, ValidationError


def require_login() -> None:
    """Raise 401 unless a user is in the session."""
    if 'user_id' not in session:
        raise AuthenticationError()


def require_admin() -> None:
    """Raise 401 without a session, 403 for non-admin roles."""
    require_login()
    if session.get('user_role') != UserRole.ADMIN.value:
        raise PermissionDeniedError("Admin role required")


def current_actor() -> Tuple[Optional[str], Optional[str]]:
    return session.get('user_id'), session.get('user_name')


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def store_user_in_session(user) -> None:
    session['user_id'] = user.id
    session['user_name'] = user.name
    session['user_email'] = user.email
    session['user_role'] = user.role.value if user.role else UserRole.USER.value
