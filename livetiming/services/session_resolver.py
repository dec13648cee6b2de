"""
Current session resolution.
"""
from datetime import datetime, timedelta
from typing import Iterable

from livetiming.core.time_utils import to_utc
from livetiming.schemas.openf1 import SessionSchema, SessionType

TRACKED_SESSION_TYPES = (SessionType.QUALIFYING, SessionType.RACE)


def _has_started(session: SessionSchema, now: datetime) -> bool:
    if session.date_start is None:
        # An open-ended session with no start cannot be placed in time
        return session.date_end is not None
    return session.date_start <= now


def _recency_key(session: SessionSchema) -> tuple[int, datetime, int]:
    # Ongoing sessions (no end yet) rank above any finished one
    if session.date_end is None:
        return (1, datetime.min, session.session_key)
    return (0, session.date_end.replace(tzinfo=None), session.session_key)


def resolve_current_session(
    sessions: Iterable[SessionSchema],
    now: datetime,
    window: timedelta,
    session_types: Iterable[SessionType] = TRACKED_SESSION_TYPES
) -> int | None:
    """
    Pick the session the dashboard should follow.

    A session is a candidate when its type is tracked, it ended after
    ``now - window`` (or has not ended yet) and it has already started.
    An unfinished session must have a known start.
    The candidate with the latest end wins; ties go to the higher
    session key.

    Args:
        sessions: Session catalog from upstream
        now: Reference time
        window: How far back a finished session still counts as current
        session_types: Session types worth tracking

    Returns:
        The winning session_key, or None if nothing qualifies
    """
    now = to_utc(now)
    cutoff = now - window
    types = set(session_types)

    candidates = [
        s for s in sessions
        if s.session_type in types
        and (s.date_end is None or s.date_end >= cutoff)
        and _has_started(s, now)
    ]

    if not candidates:
        return None

    return max(candidates, key=_recency_key).session_key
