"""
Position reconciliation: turn an upstream snapshot into new history rows.
"""
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from livetiming.core.logging import get_logger
from livetiming.core.time_utils import utc_now
from livetiming.schemas.openf1 import DriverSchema, RawPositionSchema
from livetiming.schemas.positions import PositionRecord
from livetiming.services.ingestion_modes import IngestionMode
from livetiming.services.position_store import insert_position, store_errors

logger = get_logger(__name__)


def filter_recognized(
    raw_positions: Iterable[RawPositionSchema],
    drivers_by_number: dict[int, DriverSchema],
    recognized_teams: Iterable[str]
) -> list[RawPositionSchema]:
    """
    Drop samples that cannot become rows.

    A sample is kept only if it has a position >= 1 and a date, and its
    driver is known and drives for a recognized team.
    """
    teams = set(recognized_teams)
    kept = []
    for pos in raw_positions:
        if pos.position is None or pos.position < 1 or pos.date is None:
            continue
        driver = drivers_by_number.get(pos.driver_number)
        if driver is None or driver.team_name not in teams:
            continue
        kept.append(pos)
    return kept


def build_candidates(
    session_key: int,
    raw_positions: list[RawPositionSchema],
    drivers: list[DriverSchema],
    mode: IngestionMode,
    recognized_teams: Iterable[str],
    now: datetime | None = None
) -> list[PositionRecord]:
    """
    Merge raw samples with driver metadata and apply the ingestion mode.

    Args:
        session_key: Session the samples belong to
        raw_positions: Position samples from upstream
        drivers: Driver metadata for the session
        mode: Candidate selection strategy
        recognized_teams: Team allow-list
        now: Reference time (defaults to the current UTC time)

    Returns:
        Candidate rows in write order
    """
    drivers_by_number = {d.driver_number: d for d in drivers}
    usable = filter_recognized(raw_positions, drivers_by_number, recognized_teams)
    selected = mode.select_candidates(usable, now or utc_now())

    candidates = []
    for pos in selected:
        driver = drivers_by_number[pos.driver_number]
        candidates.append(
            PositionRecord(
                session_key=session_key,
                driver_number=pos.driver_number,
                full_name=driver.full_name,
                team_name=driver.team_name,
                position=pos.position,
                date=pos.date,
            )
        )

    logger.debug(
        f"Session {session_key}: {len(raw_positions)} raw sample(s), "
        f"{len(usable)} recognized, {len(candidates)} candidate(s) in {mode.name} mode"
    )
    return candidates


def reconcile(
    db: Session,
    session_key: int,
    raw_positions: list[RawPositionSchema],
    drivers: list[DriverSchema],
    mode: IngestionMode,
    recognized_teams: Iterable[str],
    now: datetime | None = None
) -> list[PositionRecord]:
    """
    Write the novel rows of a snapshot to the position history.

    Each candidate is inserted-if-absent and committed on its own, so a
    failure part way leaves the earlier rows in place for the next cycle.

    Returns:
        The rows actually inserted, in write order

    Raises:
        StoreUnavailableException: If the store fails mid-batch
    """
    candidates = build_candidates(session_key, raw_positions, drivers, mode, recognized_teams, now)

    inserted = []
    for record in candidates:
        if insert_position(db, record):
            with store_errors("committing a position"):
                db.commit()
            inserted.append(record)

    if inserted:
        logger.info(f"Session {session_key}: inserted {len(inserted)} of {len(candidates)} candidate position(s)")
    else:
        logger.debug(f"Session {session_key}: no new positions")
    return inserted
