# run.py
"""
Development server entry point.
Pins the database path, initializes the schema and starts Flask.
Production deployments import create_app() from a WSGI server instead.
"""
import os
from portfolio.app_factory import create_app
from portfolio.db.auto_init import auto_init


def configure_database():
    """
    Default to portfolio.db next to run.py unless DATABASE_URL is set.
    """
    if os.environ.get("DATABASE_URL"):
        return
    base_dir = os.path.abspath(os.path.dirname(__file__))
    db_path = os.path.join(base_dir, "portfolio.db")
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"
    print(f"📦 Using database: {db_path}")


def main():
    # 0️⃣ database location
    configure_database()

    # 1️⃣ schema + admin
    auto_init()

    # 2️⃣ app
    app = create_app()

    # 3️⃣ server parameters
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "1") == "1"

    # 4️⃣ start
    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
