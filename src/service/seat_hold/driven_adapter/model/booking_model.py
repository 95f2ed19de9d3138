from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func, text

from src.platform.database.orm_db_setting import Base


class BookingModel(Base):
    __tablename__ = 'booking'

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)  # UUID7
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    showtime_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default='confirmed', nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    seats: Mapped[list['BookingSeatModel']] = relationship(
        'BookingSeatModel', back_populates='booking', lazy='selectin'
    )


class BookingSeatModel(Base):
    """
    Seat rows of a booking.

    Only one active row may exist per (showtime_id, seat_id); cancelling a
    booking flips is_active so the seat can be booked again.
    """

    __tablename__ = 'booking_seat'
    __table_args__ = (
        Index(
            'uq_booking_seat_active',
            'showtime_id',
            'seat_id',
            unique=True,
            postgresql_where=text('is_active'),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('booking.id', ondelete='CASCADE'), nullable=False
    )
    showtime_id: Mapped[int] = mapped_column(Integer, nullable=False)
    seat_id: Mapped[str] = mapped_column(String(16), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    booking: Mapped[BookingModel] = relationship('BookingModel', back_populates='seats')
