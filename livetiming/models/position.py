from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from livetiming.models.base import Base, TimestampMixin


class PositionHistory(Base, TimestampMixin):
    """One observed running position of a driver at one instant.

    Rows are append-only. Driver name and team are copied in at write time
    so history stays readable when upstream metadata changes.
    """

    __tablename__ = "position_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_key: Mapped[int] = mapped_column(Integer, nullable=False)
    driver_number: Mapped[int] = mapped_column(Integer, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    team_name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "driver_number",
            "position",
            "date",
            name="uq_position_history_driver_position_date",
        ),
        Index("ix_position_history_session_key", "session_key"),
        Index("ix_position_history_session_driver_date", "session_key", "driver_number", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<PositionHistory(session_key={self.session_key}, driver={self.driver_number}, "
            f"position={self.position}, date={self.date.isoformat()})>"
        )
