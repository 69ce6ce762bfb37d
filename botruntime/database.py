"""Engine and session factory shared by the app and migrations."""
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from botruntime.config import get_settings


class Base(DeclarativeBase):
    pass


# bot payloads are JSONB in Postgres; SQLite test databases store them as JSON text
@compiles(JSONB, "sqlite")
def _jsonb_as_sqlite_json(_element, _compiler, **_kw):
    return "JSON"


def get_database_url() -> str:
    s = get_settings()
    if s.database_url:
        return s.database_url
    return (
        f"postgresql://{s.postgres_user}:{s.postgres_password}@"
        f"{s.postgres_host}:{s.postgres_port}/{s.postgres_db}"
    )


@lru_cache
def get_engine() -> Engine:
    s = get_settings()
    return create_engine(
        get_database_url(),
        pool_pre_ping=True,
        pool_size=s.db_pool_size,
        max_overflow=s.db_max_overflow,
    )


def get_test_engine(url: str = "sqlite:///:memory:") -> Engine:
    """SQLite engine for tests; an in-memory database is pinned to one connection."""
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url.endswith(":memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


@lru_cache
def _default_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    if engine is None:
        return _default_session_factory()
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
