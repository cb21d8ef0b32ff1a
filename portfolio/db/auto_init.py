"""
Database auto-initialization.
Runs at startup: creates missing tables and seeds an administrator account.
"""
import os

from sqlalchemy import inspect
from portfolio.db.session import get_engine, get_session
from portfolio.db.init_db import init_db
from portfolio.db.enums import UserRole
from portfolio.services.user_service import UserService

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
REQUIRED_TABLES = {"users", "projects", "departments", "project_logs"}


def check_tables_exist() -> bool:
    """True when every application table exists"""
    try:
        engine = get_engine()
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        return REQUIRED_TABLES.issubset(tables)
    except Exception as e:
        print(f"⚠️ Could not inspect database tables: {e}")
        return False


def check_admin_user_exists() -> bool:
    db = get_session()
    try:
        user_service = UserService(db)
        return bool(user_service.list_users(role=UserRole.ADMIN))
    finally:
        db.close()


def create_admin_user():
    db = get_session()
    try:
        user_service = UserService(db)

        if user_service.get_user_by_email(ADMIN_EMAIL):
            print("ℹ️  Admin user already exists, skipping")
            return

        user_service.create_user(
            name="Administrator",
            email=ADMIN_EMAIL,
            password=ADMIN_PASSWORD,
            role=UserRole.ADMIN,
        )

        db.commit()
        print("✅ Admin user created")
        print(f"   email: {ADMIN_EMAIL}")
        print("   ⚠️  Change the password after the first login!")

    except Exception as e:
        db.rollback()
        print(f"❌ Failed to create admin user: {e}")
        raise
    finally:
        db.close()


def auto_init():
    """
    Startup check.
    Creates tables and the admin account when they are missing.
    """
    print("🔍 Checking database state...")

    if not check_tables_exist():
        print("📦 Creating tables...")
        init_db()
        print("✅ Tables created")
    else:
        print("✅ Tables present")

    if not check_admin_user_exists():
        print("👤 No admin user, creating one...")
        create_admin_user()
    else:
        print("✅ Admin user present")

    print("🎉 Database check finished\n")


if __name__ == "__main__":
    auto_init()
