# portfolio/routes/user.py
from flask import Blueprint, jsonify

from portfolio.db.session import get_session
from portfolio.errors import NotFoundError, ValidationError
from portfolio.routes.common import current_actor, json_body, require_login, store_user_in_session
from portfolio.schemas.user_dto import PasswordChangeInput, UserDTO, UserInput
from portfolio.services.user_service import UserService

user_bp = Blueprint('user', __name__, url_prefix='/api/user')

# role and password are not editable through the profile
PROFILE_FIELDS = {"name", "email", "department", "department_id", "phone", "bio", "job_title"}


@user_bp.route('/profile', methods=['GET'])
def get_profile():
    require_login()
    db = get_session()
    try:
        user = UserService(db).get_user_by_id(current_actor()[0])
        if not user:
            raise NotFoundError("User", current_actor()[0])
        return jsonify(UserDTO.from_orm_model(user).to_wire())
    finally:
        db.close()


def _update_profile(partial: bool):
    require_login()
    user_id = current_actor()[0]
    changes = UserInput.model_validate(json_body()).to_columns()
    changes = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}

    # 1️⃣ PUT requires name + email, PATCH takes any subset
    if not partial and (not changes.get('name') or not changes.get('email')):
        raise ValidationError("Name and email are required")

    db = get_session()
    try:
        user, _ = UserService(db).update_user(user_id, changes=changes)
        store_user_in_session(user)
        return jsonify(UserDTO.from_orm_model(user).to_wire())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@user_bp.route('/profile', methods=['PUT'])
def replace_profile():
    return _update_profile(partial=False)


@user_bp.route('/profile', methods=['PATCH'])
def patch_profile():
    return _update_profile(partial=True)


@user_bp.route('/password', methods=['PUT'])
def change_password():
    require_login()
    data = PasswordChangeInput.model_validate(json_body())

    db = get_session()
    try:
        UserService(db).change_password(
            user_id=current_actor()[0],
            current_password=data.current_password,
            new_password=data.new_password,
        )
        db.commit()
        return jsonify({"success": True, "message": "Password updated successfully"})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
