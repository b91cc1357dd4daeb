from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shipsy.core_settings import get_settings
from shipsy.domain.errors import ConflictError
from shipsy.domain.models import Base


def build_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    options = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise each checkout sees an empty database
        options["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, echo=echo, **options)

    @event.listens_for(sqlite_engine, "connect")
    def enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


settings = get_settings()
engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_models():
    Base.metadata.create_all(engine)


def ping_database() -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1")).fetchone()


@contextmanager
def commit_or_conflict(db: Session, message: str):
    """Commit the work done in the block; a constraint violation becomes a ConflictError."""
    try:
        yield
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(message)
