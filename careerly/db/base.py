import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Note: Models are imported in init_db() function to avoid circular imports
# All models must import Base from this module


def new_id() -> str:
    """Primary key generator for all tables (UUID4 string)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
