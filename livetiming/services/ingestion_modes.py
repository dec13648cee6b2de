"""
Ingestion modes: how raw position samples become candidate rows.

Live mode keeps the newest sample per driver. Simulated mode replays the
last few upstream timestamps of a finished session as if they were
happening now, so the dashboard can be exercised without a live event.
"""
import random
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Protocol

from livetiming.config import Settings
from livetiming.core.logging import get_logger
from livetiming.schemas.openf1 import RawPositionSchema

logger = get_logger(__name__)

JITTER_MS_RANGE = (1, 50)


class IngestionMode(Protocol):
    """Protocol for candidate selection strategies."""

    name: str
    window: timedelta  # how far back a finished session still counts as current

    def select_candidates(
        self,
        positions: list[RawPositionSchema],
        now: datetime
    ) -> list[RawPositionSchema]:
        """
        Choose which raw samples become rows, and with which timestamps.

        Args:
            positions: Samples already filtered to known drivers of recognized teams
            now: Reference time of the current cycle

        Returns:
            Samples to write, in write order
        """
        ...


class LiveMode:
    """Keep only the newest sample of each driver."""

    name = "live"

    def __init__(self, window: timedelta = timedelta(hours=6)):
        self.window = window

    def select_candidates(
        self,
        positions: list[RawPositionSchema],
        now: datetime
    ) -> list[RawPositionSchema]:
        latest: dict[int, RawPositionSchema] = {}
        for pos in positions:
            current = latest.get(pos.driver_number)
            if current is None or pos.date > current.date:
                latest[pos.driver_number] = pos
        return sorted(latest.values(), key=lambda p: (p.date, p.driver_number))


class SimulatedMode:
    """
    Replay the most recent upstream timestamps with synthesized current times.

    Samples are grouped by their original date and the newest
    ``timestamp_count`` groups are replayed oldest first. Every replayed
    sample gets a timestamp strictly after the previous one, starting at
    ``now`` plus a few milliseconds of random jitter.
    """

    name = "simulated"

    def __init__(
        self,
        window: timedelta = timedelta(days=7),
        timestamp_count: int = 5,
        rng: random.Random | None = None
    ):
        if timestamp_count < 1:
            raise ValueError(f"timestamp_count must be >= 1, got {timestamp_count}")
        self.window = window
        self.timestamp_count = timestamp_count
        self._rng = rng or random.Random()

    def select_candidates(
        self,
        positions: list[RawPositionSchema],
        now: datetime
    ) -> list[RawPositionSchema]:
        groups: dict[datetime, list[RawPositionSchema]] = defaultdict(list)
        for pos in positions:
            groups[pos.date].append(pos)

        recent_dates = sorted(groups)[-self.timestamp_count:]

        replayed = []
        current = now
        for original_date in recent_dates:
            for pos in groups[original_date]:
                current = current + timedelta(milliseconds=self._rng.randint(*JITTER_MS_RANGE))
                replayed.append(pos.model_copy(update={"date": current}))

        logger.debug(f"Simulated replay of {len(recent_dates)} timestamp group(s), {len(replayed)} sample(s)")
        return replayed


def get_ingestion_mode(settings: Settings, rng: random.Random | None = None) -> IngestionMode:
    """
    Factory function to create the ingestion mode selected in settings.

    Args:
        settings: Application settings
        rng: Optional random source for simulated jitter

    Returns:
        IngestionMode instance

    Raises:
        ValueError: If the mode is not supported
    """
    mode = settings.ingestion_mode.lower()

    if mode == "live":
        return LiveMode(window=timedelta(hours=settings.live_window_hours))
    elif mode == "simulated":
        return SimulatedMode(
            window=timedelta(days=settings.simulated_window_days),
            timestamp_count=settings.simulated_timestamp_count,
            rng=rng
        )
    else:
        raise ValueError(
            f"Unsupported ingestion mode: {mode}. "
            f"Supported modes: 'live', 'simulated'"
        )
