"""
Position ingestion: one fetch/reconcile/persist cycle and the poller that
repeats it on a fixed interval.
"""
import argparse
import asyncio
from dataclasses import dataclass, field
from datetime import datetime

from livetiming.config import Settings, get_settings
from livetiming.core.exceptions import LiveTimingException
from livetiming.core.logging import setup_logging, get_logger
from livetiming.core.time_utils import utc_now
from livetiming.db import Database
from livetiming.schemas.common import IngestionStatusSchema
from livetiming.schemas.openf1 import DriverSchema, RawPositionSchema
from livetiming.schemas.positions import PositionRecord
from livetiming.services.ingestion_modes import IngestionMode, get_ingestion_mode
from livetiming.services.openf1_client import OpenF1Client, TelemetrySource
from livetiming.services.position_reconciler import reconcile
from livetiming.services.session_resolver import resolve_current_session

logger = get_logger(__name__)


@dataclass
class CycleResult:
    """Outcome of one ingestion cycle."""
    session_key: int | None
    inserted: list[PositionRecord] = field(default_factory=list)


@dataclass
class PollerStatus:
    """Bookkeeping exposed by the status endpoint."""
    cycles_completed: int = 0
    cycles_failed: int = 0
    ticks_skipped: int = 0
    last_started_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_session_key: int | None = None
    last_inserted: int = 0
    last_error: str | None = None


def _persist(
    database: Database,
    session_key: int,
    positions: list[RawPositionSchema],
    drivers: list[DriverSchema],
    mode: IngestionMode,
    recognized_teams: list[str],
    now: datetime
) -> list[PositionRecord]:
    with database.session_scope() as db:
        return reconcile(db, session_key, positions, drivers, mode, recognized_teams, now)


async def run_ingestion_cycle(
    client: TelemetrySource,
    database: Database,
    settings: Settings,
    mode: IngestionMode,
    now: datetime | None = None
) -> CycleResult:
    """
    Fetch the current snapshot and store the novel positions.

    Args:
        client: Upstream data source
        database: Position store
        settings: Application settings (team allow-list)
        mode: Ingestion mode, which also sets the session window
        now: Reference time (defaults to the current UTC time)

    Returns:
        CycleResult with the resolved session and inserted rows

    Raises:
        UpstreamUnavailableException: If OpenF1 cannot be fetched
        StoreUnavailableException: If the store fails
    """
    now = now or utc_now()

    sessions = await client.get_sessions()
    session_key = resolve_current_session(sessions, now, mode.window)
    if session_key is None:
        logger.warning("No active race session found. Skipping position data fetch.")
        return CycleResult(session_key=None)

    positions, drivers = await asyncio.gather(
        client.get_positions(session_key),
        client.get_drivers(session_key),
    )
    logger.debug(f"Fetched {len(positions)} positions and {len(drivers)} drivers for session {session_key}")

    # SQLAlchemy calls block, keep them off the event loop
    inserted = await asyncio.to_thread(
        _persist, database, session_key, positions, drivers, mode, settings.recognized_teams, now
    )
    return CycleResult(session_key=session_key, inserted=inserted)


class PositionPoller:
    """
    Recurring ingestion task.

    Every ``poll_interval_seconds`` a tick is fired. A tick that arrives
    while the previous cycle is still running is skipped, never run
    alongside it. Cycle errors are logged and recorded, and the next tick
    tries again.

    Usage:
        poller = PositionPoller(client, database, settings)
        poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        client: TelemetrySource,
        database: Database,
        settings: Settings,
        mode: IngestionMode | None = None
    ):
        self.client = client
        self.database = database
        self.settings = settings
        self.mode = mode or get_ingestion_mode(settings)
        self.interval = settings.poll_interval_seconds
        self.status = PollerStatus()
        self._in_flight = False
        self._loop_task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def cycle_running(self) -> bool:
        return self._in_flight

    async def tick(self) -> CycleResult | None:
        """
        Run one cycle unless one is already in flight.

        Returns:
            The CycleResult, or None if the tick was skipped or the cycle failed
        """
        if self._in_flight:
            self.status.ticks_skipped += 1
            logger.warning("Previous ingestion cycle still running, skipping tick")
            return None

        self._in_flight = True
        self.status.last_started_at = utc_now()
        try:
            result = await run_ingestion_cycle(self.client, self.database, self.settings, self.mode)
            self.status.last_session_key = result.session_key
            self.status.last_inserted = len(result.inserted)
            self.status.cycles_completed += 1
            self.status.last_error = None
            return result
        except LiveTimingException as e:
            logger.error(f"Ingestion cycle failed: {e}")
            self.status.last_error = str(e)
            self.status.cycles_failed += 1
            return None
        except Exception as e:
            logger.exception(f"Unexpected error during ingestion cycle: {e}")
            self.status.last_error = f"{type(e).__name__}: {e}"
            self.status.cycles_failed += 1
            return None
        finally:
            self._in_flight = False
            self.status.last_finished_at = utc_now()

    async def _run_forever(self) -> None:
        while True:
            task = asyncio.create_task(self.tick())
            self._ticks.add(task)
            task.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start ticking on the running event loop."""
        if self._loop_task is None:
            logger.info(f"Starting position poller: {self.mode.name} mode every {self.interval}s")
            self._loop_task = asyncio.create_task(self._run_forever(), name="position-poller")

    async def stop(self) -> None:
        """Cancel the ticker and any cycle still in flight."""
        tasks = list(self._ticks)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Position poller stopped")

    def snapshot(self) -> IngestionStatusSchema:
        """Current poller state for the status endpoint."""
        return IngestionStatusSchema(
            mode=self.mode.name,
            poll_enabled=self.settings.poll_enabled,
            poll_interval_seconds=self.interval,
            cycle_running=self._in_flight,
            cycles_completed=self.status.cycles_completed,
            cycles_failed=self.status.cycles_failed,
            ticks_skipped=self.status.ticks_skipped,
            last_started_at=self.status.last_started_at,
            last_finished_at=self.status.last_finished_at,
            last_session_key=self.status.last_session_key,
            last_inserted=self.status.last_inserted,
            last_error=self.status.last_error,
        )


async def _run_cli(settings: Settings, once: bool) -> None:
    database = Database(settings.database_url, echo=settings.debug)
    if settings.auto_create_tables:
        database.create_all()
    client = OpenF1Client(settings)
    poller = PositionPoller(client, database, settings)

    try:
        if once:
            result = await poller.tick()
            if result is not None:
                logger.info(f"Session {result.session_key}: {len(result.inserted)} new position(s)")
        else:
            poller.start()
            # Runs until interrupted
            await asyncio.Event().wait()
    finally:
        await poller.stop()
        await client.aclose()
        database.dispose()


def main():
    """CLI entrypoint for the position ingestion job."""
    parser = argparse.ArgumentParser(
        description="Ingest live F1 positions from OpenF1 into the position history"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit instead of polling"
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["live", "simulated"],
        default=None,
        help="Override the configured ingestion mode"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    args = parser.parse_args()

    setup_logging(args.log_level)

    settings = get_settings()
    if args.mode:
        settings = settings.model_copy(update={"ingestion_mode": args.mode})

    logger.info("=" * 60)
    logger.info(f"F1 Position Ingestion ({settings.ingestion_mode} mode)")
    logger.info("=" * 60)

    try:
        asyncio.run(_run_cli(settings, args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
