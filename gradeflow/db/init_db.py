from gradeflow.db.base_class import Base
from gradeflow.db.session import engine

# import models so SQLAlchemy registers them
from gradeflow.models import assignment, submission  # noqa: F401


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
