"""
Unit tests for SeatHoldCoordinator

Test Coverage:
1. Connect / join showtime: connected ack, group membership, initial seat map
2. Select: winner broadcast, conflict goes to the loser only, one winner under contention;
   a rejected select leaves group membership unchanged
3. Deselect / clear-all / extend: holder checks and events
4. Confirm booking end to end
5. Disconnect grace and reconnect within it
6. Lifecycle: shutdown rejects new operations
7. Administrative reads and releases
"""

import asyncio

import pytest

from src.platform.exception.exceptions import (
    ConflictError,
    ExtensionLimitError,
    InvalidInputError,
    NotHolderError,
    ServiceUnavailableError,
)
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.enum.hold_outcome import ConflictResolution
from src.service.seat_hold.domain.value_object.seat_key import SeatKey


pytestmark = pytest.mark.unit


def seat_states(payload: dict) -> dict[str, str]:
    return {seat['seat_id']: seat['state'] for seat in payload['seats']}


def only_showtimes(*known: int):
    """Inventory stub that knows only the given showtimes"""
    inventory = ['A1', 'A2', 'A3', 'A4', 'B1', 'B2']

    def _list_seat_ids(*, showtime_id: int):
        return list(inventory) if showtime_id in known else None

    return _list_seat_ids


class TestConnectAndJoin:
    @pytest.mark.asyncio
    async def test_connect_acknowledges_session(self, seat_hold, make_session):
        # Given
        session = make_session(7, 'conn-7')

        # When
        seat_hold.coordinator.connect(session)

        # Then
        assert session.channel.last('connected') == {'connection_id': 'conn-7', 'user_id': 7}
        assert seat_hold.registry.sessions['conn-7'] is session

    @pytest.mark.asyncio
    async def test_join_showtime_sends_seat_map_and_joins_group(self, seat_hold, make_session):
        session = make_session(7)
        seat_hold.coordinator.connect(session)

        snapshot = await seat_hold.coordinator.join_showtime(session, {'showtimeId': '1'})

        assert snapshot.showtime_id == 1
        assert session.showtime_id == 1
        assert seat_hold.registry.group_sessions[1] == {session}
        assert set(seat_states(session.channel.last('seats-state')).values()) == {'available'}

    @pytest.mark.asyncio
    async def test_join_with_malformed_showtime_is_rejected(self, seat_hold, make_session):
        session = make_session(7)

        with pytest.raises(InvalidInputError):
            await seat_hold.coordinator.join_showtime(session, 'abc')

        assert session.showtime_id is None


class TestSelectSeat:
    @pytest.mark.asyncio
    async def test_winner_is_broadcast_to_the_group(self, seat_hold, make_session):
        # Given: Alice and Bob watch showtime 1
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.join_showtime(alice, 1)
        await seat_hold.coordinator.join_showtime(bob, 1)

        # When
        result = await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        # Then
        assert result.acquired
        selected = bob.channel.last('seat-selected')
        assert selected['seat_id'] == 'A1'
        assert selected['user_id'] == 1
        assert selected['status'] == 'selected'
        assert selected['expires_at'] == seat_hold.clock.now + 300.0
        assert seat_states(bob.channel.last('seats-state'))['A1'] == 'held'

    @pytest.mark.asyncio
    async def test_conflict_goes_to_loser_only(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.join_showtime(alice, 1)
        await seat_hold.coordinator.join_showtime(bob, 1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        alice.channel.clear()

        result = await seat_hold.coordinator.select_seat(bob, 1, 'A1')

        assert result.resolution == ConflictResolution.SEAT_ALREADY_HELD
        conflict = bob.channel.last('seat-conflict')
        assert conflict['reason'] == 'SEAT_ALREADY_HELD'
        assert conflict['seat_id'] == 'A1'
        assert alice.channel.messages == []
        assert seat_hold.store.get_hold(SeatKey(1, 'A1')).user_id == 1

    @pytest.mark.asyncio
    async def test_booked_seat_conflict_reason(self, seat_hold, make_session):
        seat_hold.inventory_repo.find_confirmed_seat_ids.return_value = {'B1'}
        bob = make_session(2)

        await seat_hold.coordinator.select_seat(bob, 1, 'B1')

        assert bob.channel.last('seat-conflict')['reason'] == 'SEAT_ALREADY_BOOKED'

    @pytest.mark.asyncio
    async def test_unknown_seat_raises_invalid_seat(self, seat_hold, make_session):
        bob = make_session(2)

        with pytest.raises(InvalidInputError) as exc_info:
            await seat_hold.coordinator.select_seat(bob, 1, 'Z9')

        assert exc_info.value.error_code == 'INVALID_SEAT'

    @pytest.mark.asyncio
    async def test_concurrent_selects_produce_one_winner(self, seat_hold, make_session):
        # Given: eight users racing for A1
        sessions = [make_session(user_id) for user_id in range(100, 108)]
        for session in sessions:
            await seat_hold.coordinator.join_showtime(session, 1)

        # When
        results = await asyncio.gather(
            *(seat_hold.coordinator.select_seat(session, 1, 'A1') for session in sessions)
        )

        # Then
        winners = [session for session, result in zip(sessions, results) if result.acquired]
        assert len(winners) == 1
        losers = [session for session in sessions if session is not winners[0]]
        assert all(session.channel.last('seat-conflict') for session in losers)
        assert seat_hold.store.get_hold(SeatKey(1, 'A1')).user_id == winners[0].user_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize('showtime_id, seat_id', [(999, 'A1'), (2, 'Z9')])
    async def test_rejected_select_keeps_group_membership(
        self, seat_hold, make_session, showtime_id, seat_id
    ):
        # Given: viewer and other watch showtime 1; showtime 999 does not exist
        seat_hold.inventory_repo.list_seat_ids.side_effect = only_showtimes(1, 2)
        viewer = make_session(2, 'viewer')
        other = make_session(3, 'other')
        for session in (viewer, other):
            seat_hold.coordinator.connect(session)
            await seat_hold.coordinator.join_showtime(session, 1)

        # When
        with pytest.raises(InvalidInputError):
            await seat_hold.coordinator.select_seat(viewer, showtime_id, seat_id)

        # Then: still in showtime 1 and still receiving its events
        assert viewer.showtime_id == 1
        assert seat_hold.registry.group_sessions[1] == {viewer, other}
        assert showtime_id not in seat_hold.registry.group_sessions
        viewer.channel.clear()
        await seat_hold.coordinator.select_seat(other, 1, 'A2')
        assert viewer.channel.last('seat-selected')['seat_id'] == 'A2'

    @pytest.mark.asyncio
    async def test_select_without_connection_does_not_join_a_group(
        self, seat_hold, make_session
    ):
        watcher = make_session(2)
        await seat_hold.coordinator.join_showtime(watcher, 1)
        buyer = Session.detached(user_id=5)

        result = await seat_hold.coordinator.select_seat(buyer, 1, 'A3')

        assert result.acquired
        assert buyer.showtime_id is None
        assert seat_hold.registry.group_sessions[1] == {watcher}
        assert watcher.channel.last('seat-selected')['user_id'] == 5


class TestDeselectClearExtend:
    @pytest.mark.asyncio
    async def test_deselect_frees_seat_for_everyone(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.join_showtime(alice, 1)
        await seat_hold.coordinator.join_showtime(bob, 1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        await seat_hold.coordinator.deselect_seat(alice, 1, 'A1')

        assert bob.channel.last('seat-deselected')['status'] == 'available'
        assert seat_states(bob.channel.last('seats-state'))['A1'] == 'available'

    @pytest.mark.asyncio
    async def test_deselect_by_non_holder_is_rejected(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        with pytest.raises(NotHolderError):
            await seat_hold.coordinator.deselect_seat(bob, 1, 'A1')

        assert seat_hold.store.get_hold(SeatKey(1, 'A1')).user_id == 1

    @pytest.mark.asyncio
    async def test_deselect_unheld_seat(self, seat_hold, make_session):
        with pytest.raises(ConflictError) as exc_info:
            await seat_hold.coordinator.deselect_seat(make_session(1), 1, 'A1')

        assert exc_info.value.error_code == 'NOT_HELD'

    @pytest.mark.asyncio
    async def test_clear_all_releases_own_seats_in_showtime(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        await seat_hold.coordinator.select_seat(alice, 1, 'A2')
        await seat_hold.coordinator.select_seat(bob, 1, 'B1')

        summary = await seat_hold.coordinator.clear_all_seats(alice, 1)

        assert sorted(summary.seat_ids()) == ['A1', 'A2']
        assert alice.channel.last('seats-cleared')['count'] == 2
        assert seat_hold.store.get_hold(SeatKey(1, 'B1')) is not None

    @pytest.mark.asyncio
    async def test_clear_all_with_nothing_held(self, seat_hold, make_session):
        alice = make_session(1)

        summary = await seat_hold.coordinator.clear_all_seats(alice, 1)

        assert summary.count == 0
        assert alice.channel.last('seats-cleared') == {
            'showtime_id': 1,
            'released_seat_ids': [],
            'count': 0,
        }

    @pytest.mark.asyncio
    async def test_extend_pushes_expiry_and_acks_requester(self, seat_hold, make_session):
        alice = make_session(1)
        result = await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        expires_at = await seat_hold.coordinator.extend_seat_hold(alice, 1, 'A1')

        assert expires_at == result.hold.expires_at + 60
        assert alice.channel.last('seat-hold-extended')['expires_at'] == expires_at

    @pytest.mark.asyncio
    async def test_extend_limit_and_non_holder(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        with pytest.raises(NotHolderError):
            await seat_hold.coordinator.extend_seat_hold(bob, 1, 'A1')

        await seat_hold.coordinator.extend_seat_hold(alice, 1, 'A1')
        await seat_hold.coordinator.extend_seat_hold(alice, 1, 'A1')
        with pytest.raises(ExtensionLimitError):
            await seat_hold.coordinator.extend_seat_hold(alice, 1, 'A1')


class TestConfirmBooking:
    @pytest.mark.asyncio
    async def test_confirmed_seats_show_as_confirmed(self, seat_hold, make_session):
        # Given
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.join_showtime(alice, 1)
        await seat_hold.coordinator.join_showtime(bob, 1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        await seat_hold.coordinator.select_seat(alice, 1, 'A2')

        # When
        booking = await seat_hold.coordinator.confirm_booking(alice, 1, ['A1', 'A2'], '25.00')

        # Then
        confirmed = alice.channel.last('booking-confirmed')
        assert confirmed['booking_id'] == str(booking.id)
        assert confirmed['seat_ids'] == ['A1', 'A2']
        assert confirmed['total_amount'] == '25.00'
        states = seat_states(bob.channel.last('seats-state'))
        assert states['A1'] == 'confirmed'
        assert states['A2'] == 'confirmed'

    @pytest.mark.asyncio
    async def test_partial_ownership_rejected_and_holds_kept(self, seat_hold, make_session):
        alice = make_session(1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        with pytest.raises(NotHolderError):
            await seat_hold.coordinator.confirm_booking(alice, 1, ['A1', 'A2'], 20)

        assert seat_hold.store.get_hold(SeatKey(1, 'A1')).user_id == 1
        assert alice.channel.last('booking-confirmed') is None

    @pytest.mark.asyncio
    async def test_confirmed_seat_cannot_be_selected_again(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        await seat_hold.coordinator.confirm_booking(alice, 1, ['A1'], 10)

        result = await seat_hold.coordinator.select_seat(bob, 1, 'A1')

        assert result.resolution == ConflictResolution.SEAT_ALREADY_BOOKED


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_without_holds_schedules_nothing(self, seat_hold, make_session):
        alice = make_session(1)
        seat_hold.coordinator.connect(alice)
        await seat_hold.coordinator.join_showtime(alice, 1)

        await seat_hold.coordinator.disconnect(alice)

        assert seat_hold.reconciler.pending_count == 0
        assert seat_hold.registry.session_count == 0

    @pytest.mark.asyncio
    async def test_reload_within_grace_keeps_both_seats(self, seat_hold, make_session):
        # Given: Alice holds A1 and B1, then her tab reloads
        old = make_session(1, 'alice-old')
        seat_hold.coordinator.connect(old)
        await seat_hold.coordinator.select_seat(old, 1, 'A1')
        await seat_hold.coordinator.select_seat(old, 1, 'B1')
        await seat_hold.coordinator.disconnect(old)
        assert seat_hold.reconciler.is_pending('alice-old')

        # When: she comes back before the grace window ends
        new = make_session(1, 'alice-new')
        seat_hold.coordinator.connect(new)
        await seat_hold.coordinator.join_showtime(new, 1)
        await asyncio.sleep(0.2)

        # Then
        for seat_id in ('A1', 'B1'):
            assert seat_hold.store.get_hold(SeatKey(1, seat_id)).holder.connection_id == 'alice-new'
        assert seat_states(new.channel.last('seats-state'))['B1'] == 'held'

    @pytest.mark.asyncio
    async def test_holds_released_when_grace_passes(self, seat_hold, make_session):
        alice = make_session(1)
        bob = make_session(2)
        seat_hold.coordinator.connect(alice)
        await seat_hold.coordinator.join_showtime(bob, 1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        await seat_hold.coordinator.disconnect(alice)
        await asyncio.sleep(0.2)

        assert seat_hold.store.get_hold(SeatKey(1, 'A1')) is None
        assert seat_states(bob.channel.last('seats-state'))['A1'] == 'available'

    @pytest.mark.asyncio
    async def test_rejected_select_does_not_break_reconnect_within_grace(
        self, seat_hold, make_session
    ):
        # Given: Alice holds B1 in showtime 1, then sends a select for a missing showtime
        seat_hold.inventory_repo.list_seat_ids.side_effect = only_showtimes(1)
        old = make_session(1, 'alice-old')
        seat_hold.coordinator.connect(old)
        await seat_hold.coordinator.join_showtime(old, 1)
        await seat_hold.coordinator.select_seat(old, 1, 'B1')
        with pytest.raises(InvalidInputError):
            await seat_hold.coordinator.select_seat(old, 999, 'A1')

        # When: she drops and rejoins showtime 1 within the grace window
        await seat_hold.coordinator.disconnect(old)
        new = make_session(1, 'alice-new')
        seat_hold.coordinator.connect(new)
        await seat_hold.coordinator.join_showtime(new, 1)
        await asyncio.sleep(0.2)

        # Then
        hold = seat_hold.store.get_hold(SeatKey(1, 'B1'))
        assert hold is not None
        assert hold.holder.connection_id == 'alice-new'
        assert seat_hold.reconciler.pending_count == 0


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_runs_sweeper(self, seat_hold):
        await seat_hold.coordinator.start()

        assert seat_hold.coordinator.is_running
        assert seat_hold.sweeper.running

        await seat_hold.coordinator.shutdown()
        assert not seat_hold.sweeper.running

    @pytest.mark.asyncio
    async def test_shutdown_rejects_operations(self, seat_hold, make_session):
        alice = make_session(1)
        await seat_hold.coordinator.start()

        await seat_hold.coordinator.shutdown()

        assert not seat_hold.coordinator.is_running
        with pytest.raises(ServiceUnavailableError):
            seat_hold.coordinator.connect(alice)
        with pytest.raises(ServiceUnavailableError):
            await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        with pytest.raises(ServiceUnavailableError):
            await seat_hold.coordinator.start()

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending_releases(self, seat_hold, make_session):
        alice = make_session(1)
        seat_hold.coordinator.connect(alice)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        await seat_hold.coordinator.disconnect(alice)

        await seat_hold.coordinator.shutdown()

        assert seat_hold.reconciler.pending_count == 0


class TestAdministration:
    @pytest.mark.asyncio
    async def test_statistics(self, seat_hold, make_session):
        alice = make_session(1)
        seat_hold.coordinator.connect(alice)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')

        stats = seat_hold.coordinator.get_seat_statistics(alice)

        assert stats['total_held_seats'] == 1
        assert stats['connected_sessions'] == 1
        assert stats['showtime_groups'] == {1: 1}
        assert alice.channel.last('seat-statistics') == stats

    @pytest.mark.asyncio
    async def test_expiring_seats(self, seat_hold, make_session):
        alice = make_session(1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        seat_hold.clock.advance(250)

        assert [hold.seat.seat_id for hold in seat_hold.coordinator.expiring_seats(60)] == ['A1']
        with pytest.raises(InvalidInputError):
            seat_hold.coordinator.expiring_seats(0)

    @pytest.mark.asyncio
    async def test_cleanup_sweeps_due_holds(self, seat_hold, make_session):
        alice = make_session(1)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        seat_hold.clock.advance(301)

        assert await seat_hold.coordinator.cleanup() == 1

    @pytest.mark.asyncio
    async def test_release_user_seats_notifies_user_sessions(self, seat_hold, make_session):
        alice = make_session(1)
        seat_hold.coordinator.connect(alice)
        await seat_hold.coordinator.select_seat(alice, 1, 'A1')
        await seat_hold.coordinator.select_seat(alice, 2, 'A1')

        summary = await seat_hold.coordinator.release_user_seats(1, 2)

        assert summary.seat_ids() == ['A1']
        assert alice.channel.last('seats-cleared') == {
            'showtime_id': 2,
            'released_seat_ids': ['A1'],
            'count': 1,
        }
        assert seat_hold.store.get_hold(SeatKey(1, 'A1')) is not None

    @pytest.mark.asyncio
    async def test_snapshot_for_admin(self, seat_hold):
        snapshot = await seat_hold.coordinator.snapshot('1')

        assert snapshot.showtime_id == 1
        assert len(snapshot.seats) == 6
