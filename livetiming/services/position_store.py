"""
Position history store: append-only writes and read queries.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Generator

from sqlalchemy import select, func, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from livetiming.core.exceptions import StoreUnavailableException
from livetiming.core.logging import get_logger
from livetiming.models.position import PositionHistory
from livetiming.schemas.positions import PositionRecord

logger = get_logger(__name__)

UNIQUE_COLUMNS = ["driver_number", "position", "date"]


@contextmanager
def store_errors(action: str) -> Generator[None, None, None]:
    """Re-raise connectivity failures as StoreUnavailableException."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Position store unavailable while {action}: {e}")
        raise StoreUnavailableException(f"Position store unavailable while {action}") from e


def position_exists(db: Session, driver_number: int, position: int, date: datetime) -> bool:
    """Check whether the (driver, position, date) tuple is already stored."""
    stmt = (
        select(PositionHistory.id)
        .where(PositionHistory.driver_number == driver_number)
        .where(PositionHistory.position == position)
        .where(PositionHistory.date == date)
        .limit(1)
    )
    with store_errors("checking a position"):
        return db.execute(stmt).scalar_one_or_none() is not None


def _insert_if_absent(db: Session, values: dict):
    """Build a dialect-specific INSERT ... ON CONFLICT DO NOTHING, if supported."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(PositionHistory).values(**values).on_conflict_do_nothing(
            index_elements=UNIQUE_COLUMNS
        )
    if dialect == "sqlite":
        return sqlite_insert(PositionHistory).values(**values).on_conflict_do_nothing(
            index_elements=UNIQUE_COLUMNS
        )
    return None


def insert_position(db: Session, record: PositionRecord) -> bool:
    """
    Append a position row unless its (driver, position, date) tuple exists.

    The check and the write are one statement, so two writers racing on the
    same tuple cannot both insert it.

    Args:
        db: Database session
        record: Row to append

    Returns:
        True if a row was written, False if it was already present
    """
    values = record.model_dump()
    with store_errors("inserting a position"):
        stmt = _insert_if_absent(db, values)
        if stmt is not None:
            return db.execute(stmt).rowcount == 1

        # Other dialects: let the unique constraint decide inside a savepoint
        try:
            with db.begin_nested():
                db.execute(insert(PositionHistory).values(**values))
            return True
        except IntegrityError:
            return False


def get_position_history(db: Session, driver_number: int, session_key: int) -> list[PositionHistory]:
    """Get a driver's stored positions in a session, oldest first."""
    stmt = (
        select(PositionHistory)
        .where(PositionHistory.driver_number == driver_number)
        .where(PositionHistory.session_key == session_key)
        .order_by(PositionHistory.date, PositionHistory.id)
    )
    with store_errors("reading position history"):
        return list(db.execute(stmt).scalars().all())


def get_drivers_with_positions(db: Session, session_key: int) -> list[tuple[int, str]]:
    """Get distinct (driver_number, full_name) pairs with stored data, by name."""
    stmt = (
        select(PositionHistory.driver_number, PositionHistory.full_name)
        .where(PositionHistory.session_key == session_key)
        .distinct()
        .order_by(PositionHistory.full_name, PositionHistory.driver_number)
    )
    with store_errors("reading drivers"):
        return [(row.driver_number, row.full_name) for row in db.execute(stmt).all()]


def get_latest_positions(db: Session, session_key: int) -> list[PositionHistory]:
    """
    Get the most recent stored row of every driver in a session.

    Returns:
        One PositionHistory per driver, ordered by position
    """
    ranked = (
        select(
            PositionHistory.id,
            func.row_number()
            .over(
                partition_by=PositionHistory.driver_number,
                order_by=(PositionHistory.date.desc(), PositionHistory.id.desc()),
            )
            .label("rn"),
        )
        .where(PositionHistory.session_key == session_key)
        .subquery()
    )
    stmt = (
        select(PositionHistory)
        .join(ranked, PositionHistory.id == ranked.c.id)
        .where(ranked.c.rn == 1)
        .order_by(PositionHistory.position, PositionHistory.driver_number)
    )
    with store_errors("reading latest positions"):
        return list(db.execute(stmt).scalars().all())
