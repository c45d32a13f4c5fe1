"""Database engine and session factory for SQLAlchemy."""

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from ..config import settings


class Base(DeclarativeBase):
    pass


engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False},  # SQLite needs this for multi-thread
    echo=False,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Session:
    """Dependency for FastAPI endpoints."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def register_models() -> None:
    """Import every model module so it registers with Base.metadata."""
    from . import water_body  # noqa: F401
    from . import fly_shop_source  # noqa: F401
    from . import fishing_report  # noqa: F401
    from . import recommendation_cache  # noqa: F401


def init_database() -> None:
    """Create all tables."""
    register_models()
    Base.metadata.create_all(bind=engine)

    # WAL lets concurrent requests read while a cache upsert is in flight
    with engine.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=WAL"))
        conn.commit()
