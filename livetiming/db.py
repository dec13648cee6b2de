"""
Database resource management using SQLAlchemy 2.x.

The engine lives inside a Database object created at application startup
and disposed at shutdown, instead of a module-level global.
"""
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from livetiming.models.base import Base


def _engine_options(database_url: str, echo: bool) -> dict:
    """Build create_engine() keyword arguments for the given backend."""
    if database_url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions and threads
        return {
            "echo": echo,
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "echo": echo,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


class Database:
    """
    Process-scoped owner of the SQLAlchemy engine and session factory.

    Usage:
        database = Database(settings.database_url)
        with database.session_scope() as db:
            db.execute(...)
        database.dispose()
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.engine: Engine = create_engine(database_url, **_engine_options(database_url, echo))
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

    def create_all(self) -> None:
        """Create all tables known to the ORM metadata."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a session that commits on success and rolls back on error.

        Yields:
            Session: SQLAlchemy database session
        """
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Yields:
        Session: SQLAlchemy database session bound to the app's Database

    Usage:
        @app.get("/")
        def read_root(db: Session = Depends(get_db)):
            # use db here
    """
    database: Database = request.app.state.database
    with database.session_scope() as db:
        yield db
