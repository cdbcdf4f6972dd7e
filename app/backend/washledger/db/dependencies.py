"""Database dependencies for FastAPI endpoints."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from washledger.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield a read-only reporting session; nothing is ever committed."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
