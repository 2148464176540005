"""Database engine, session factory and declarative base."""
import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    pool_pre_ping=True,
)

# autoflush stays off: use-cases decide when pending rows hit the database.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_rollback(db: Session, *, operation: str, entity_id=None) -> None:
    """Commit the unit of work; on database errors roll back, log and re-raise."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("db.commit_failed operation=%s entity=%s", operation, entity_id)
        raise
