import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from auth import hash_password
from config import settings
import models_sqlalchemy as models

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=settings.DEBUG)
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        echo=settings.DEBUG,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency to get a DB session from the factory opened at startup
def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine):
    logger.info("Creating missing tables...")
    models.Base.metadata.create_all(bind=engine)


def check_db_connection(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def ensure_admin(db: Session):
    """Create the configured admin account if it does not exist yet."""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return
    existing = db.query(models.User).filter(models.User.email == settings.ADMIN_EMAIL).first()
    if existing:
        if existing.role != models.UserRole.ADMIN.value:
            logger.warning(f"User {settings.ADMIN_EMAIL} exists but is not an admin")
        return
    db.add(models.User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        password=hash_password(settings.ADMIN_PASSWORD),
        role=models.UserRole.ADMIN.value,
    ))
    db.commit()
    logger.info(f"Created admin account {settings.ADMIN_EMAIL}")
