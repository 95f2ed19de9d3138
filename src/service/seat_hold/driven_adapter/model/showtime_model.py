from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class ShowtimeModel(Base):
    __tablename__ = 'showtime'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cinema_room_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class SeatLayoutModel(Base):
    """One physical seat of a cinema room; seat id on the wire is row_label + column_number"""

    __tablename__ = 'seat_layout'
    __table_args__ = (
        UniqueConstraint('cinema_room_id', 'row_label', 'column_number', name='uq_seat_position'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cinema_room_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    row_label: Mapped[str] = mapped_column(String(4), nullable=False)
    column_number: Mapped[int] = mapped_column(Integer, nullable=False)
    seat_type: Mapped[str] = mapped_column(String(20), default='regular', nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def seat_id(self) -> str:
        return f'{self.row_label}{self.column_number}'
