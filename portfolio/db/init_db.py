from portfolio.db.session import get_engine
from portfolio.db.base import Base
# models must be imported so their tables are registered on Base.metadata
from portfolio.models.project import Project  # noqa: F401
from portfolio.models.user import User  # noqa: F401
from portfolio.models.department import Department  # noqa: F401
from portfolio.models.project_log import ProjectLog  # noqa: F401


def init_db():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def drop_db():
    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
