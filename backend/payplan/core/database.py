from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from payplan.core.config import settings


def _connect_args(dsn: str) -> dict[str, Any]:
    # Jobs and the API share one SQLite file across threads in development.
    return {"check_same_thread": False} if dsn.startswith("sqlite") else {}


engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=_connect_args(settings.APP_DATABASE_DSN),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
