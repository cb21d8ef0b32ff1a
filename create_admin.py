# create_admin.py
"""
Seed an administrator, a few users and sample departments.
Development / manual maintenance only.
"""
import os

from portfolio.db.enums import UserRole
from portfolio.db.init_db import init_db
from portfolio.db.session import get_session
from portfolio.services.department_service import DepartmentService
from portfolio.services.user_service import UserService

DEPARTMENTS = [
    {"name": "Engineering", "description": "Engineering and maintenance projects"},
    {"name": "Operations", "description": "Plant and field operations"},
    {"name": "IT", "description": "Information technology"},
]

USERS = [
    {"name": "Administrator", "email": "admin@example.com", "password": "admin123", "role": UserRole.ADMIN},
    {"name": "PMO Lead", "email": "pmo@example.com", "password": "pmo12345", "role": UserRole.PMO},
    {"name": "Project Engineer", "email": "engineer@example.com", "password": "engineer123", "role": UserRole.USER},
]


def create_admin():
    os.environ.setdefault(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.abspath(os.path.dirname(__file__)), 'portfolio.db')}",
    )
    init_db()

    db = get_session()
    try:
        department_service = DepartmentService(db)
        user_service = UserService(db)

        for d in DEPARTMENTS:
            if department_service.department_name_exists(d["name"]):
                print(f"⚠️ Department '{d['name']}' already exists, skipping")
                continue
            department_service.create_department(**d)

        for u in USERS:
            if user_service.get_user_by_email(u["email"]):
                print(f"⚠️ User '{u['email']}' already exists, skipping")
                continue
            user_service.create_user(**u)

        db.commit()
        print("✅ Seed data created")

    except Exception as e:
        db.rollback()
        print(f"❌ Seeding failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
