#!/usr/bin/env python3
"""
Database Seed Script
Populate a cinema room and a showtime for local runs

Features:
1. Create Tables - create the showtime, seat layout and booking tables if missing
2. Create Room - one cinema room, rows A-E with 10 seats each
3. Create Showtime - one active showtime in that room, starting tomorrow
4. Print Tokens - demo customer and admin bearer tokens for the WebSocket and HTTP API

Notes:
- Hold state is in memory only; nothing here touches it
- Run with `python -m script.seed_data` from the project root
"""

import asyncio
from datetime import datetime, timedelta, timezone
import os

from sqlalchemy import delete, func, select

from src.platform.config.di import container
from src.service.seat_hold.domain.enum.user_role import UserRole
from src.service.seat_hold.driven_adapter.model.booking_model import (
    BookingModel,
    BookingSeatModel,
)
from src.service.seat_hold.driven_adapter.model.showtime_model import (
    SeatLayoutModel,
    ShowtimeModel,
)
from src.service.seat_hold.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


CINEMA_ROOM_ID = 1
SHOWTIME_ID = 1
ROWS = os.getenv('SEAT_ROWS', 'ABCDE')
COLUMNS = int(os.getenv('SEAT_COLUMNS', '10'))
DEMO_CUSTOMER_ID = 1
DEMO_ADMIN_ID = 99


async def reset_tables(session) -> None:
    print('🧹 Clearing seed tables...')
    for model in (BookingSeatModel, BookingModel, SeatLayoutModel, ShowtimeModel):
        await session.execute(delete(model))


async def create_room(session) -> int:
    print(f'💺 Creating room {CINEMA_ROOM_ID}: rows {ROWS} x {COLUMNS} seats...')
    seats = [
        SeatLayoutModel(
            cinema_room_id=CINEMA_ROOM_ID,
            row_label=row,
            column_number=column,
            seat_type='premium' if row == ROWS[-1] else 'regular',
        )
        for row in ROWS
        for column in range(1, COLUMNS + 1)
    ]
    session.add_all(seats)
    return len(seats)


async def create_showtime(session) -> None:
    start_time = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    start_time += timedelta(days=1)
    session.add(
        ShowtimeModel(
            id=SHOWTIME_ID,
            cinema_room_id=CINEMA_ROOM_ID,
            start_time=start_time,
            is_active=True,
        )
    )
    print(f'   ✅ Showtime {SHOWTIME_ID} at {start_time.isoformat()}')


async def verify_data(session) -> None:
    print('🔍 Verifying seeded data...')
    for model in (ShowtimeModel, SeatLayoutModel, BookingModel):
        count = await session.scalar(select(func.count()).select_from(model))
        print(f'   {model.__tablename__} count: {count}')


def print_tokens() -> None:
    jwt_auth = JwtAuth()
    customer = jwt_auth.create_jwt_token(user_id=DEMO_CUSTOMER_ID)
    admin = jwt_auth.create_jwt_token(
        user_id=DEMO_ADMIN_ID, role=UserRole.ADMIN, expires_in=timedelta(days=1)
    )
    print('🔑 Demo tokens:')
    print(f'   customer (user {DEMO_CUSTOMER_ID}): {customer}')
    print(f'   admin    (user {DEMO_ADMIN_ID}): {admin}')


async def main() -> None:
    database = container.database()
    try:
        await database.create_tables()
        async with database.session() as session:
            await reset_tables(session)
            seat_count = await create_room(session)
            await create_showtime(session)
            await session.commit()
            print(f'   ✅ Created {seat_count} seats')

            await verify_data(session)
    finally:
        await database.close()

    print_tokens()
    print('🎉 Seed complete')


if __name__ == '__main__':
    asyncio.run(main())
