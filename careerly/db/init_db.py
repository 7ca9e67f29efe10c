from careerly.db.session import engine
from careerly.db.base import Base
import careerly.db.models  # noqa: F401  (registers every model on Base.metadata)


def init_db():
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
