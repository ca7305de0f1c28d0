from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from contextlib import contextmanager
from signdesk.config import settings

database_url = settings.database_url

# SQLite needs cross-thread access because Flask serves requests from a pool.
if str(database_url).strip().lower().startswith("sqlite"):
    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=3600,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@contextmanager
def get_db():
    """Context manager for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db_session():
    """Get a database session directly (caller responsible for closing)"""
    return SessionLocal()


def init_db() -> None:
    """Create tables for all registered models."""
    from signdesk import models  # noqa: F401  # ensure models are registered

    Base.metadata.create_all(bind=engine)
