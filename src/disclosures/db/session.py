from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from disclosures.db.models import SessionLocal


@contextmanager
def get_session_context() -> Generator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Generator[Session]:
    """Commit everything done inside the block, or nothing."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
