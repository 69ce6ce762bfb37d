"""FastAPI dependencies."""
from typing import Iterator

from sqlalchemy.orm import Session

from botruntime.database import get_session_factory


def get_db() -> Iterator[Session]:
    """One session per request; anything left uncommitted is rolled back on close."""
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
