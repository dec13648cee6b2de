# livetiming/core/exceptions.py
"""Custom exceptions."""
from fastapi import HTTPException, status


NO_ACTIVE_SESSION_MESSAGE = "No active race session found."


class LiveTimingException(Exception):
    """Base exception for the live timing application."""
    pass


class UpstreamUnavailableException(LiveTimingException):
    """Raised when the OpenF1 API cannot be reached or answers with an error."""
    pass


class NoActiveSessionException(LiveTimingException):
    """Raised when no qualifying or race session is currently relevant."""
    pass


class DriverNotFoundException(LiveTimingException):
    """Raised when a driver is not part of the current session."""
    pass


class StoreUnavailableException(LiveTimingException):
    """Raised when the position store cannot be reached."""
    pass


def no_active_session() -> HTTPException:
    """Create HTTPException for a missing active session."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=NO_ACTIVE_SESSION_MESSAGE
    )


def driver_not_found(driver_number: int) -> HTTPException:
    """Create HTTPException for driver not found."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Driver #{driver_number} not found in the current session"
    )


def internal_error() -> HTTPException:
    """Create HTTPException for unexpected failures."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )
