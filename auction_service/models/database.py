from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from auction_service.config import settings


def _normalize_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+psycopg://", 1)

    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    return database_url


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    # A timed-out lock wait aborts the statement instead of blocking forever.
    return {
        "connect_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS,
        "options": (
            f"-c lock_timeout={settings.DB_LOCK_TIMEOUT_MS} "
            f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
        ),
    }


def build_engine(database_url: str):
    normalized = _normalize_database_url(database_url)
    return create_engine(
        normalized,
        connect_args=_connect_args(normalized),
        pool_pre_ping=not normalized.startswith("sqlite"),
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
