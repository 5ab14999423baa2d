"""
Tournament registry: lifecycle transitions and slot accounting
"""
import pytest

from core.exceptions import InvalidTransition, TournamentFull, TournamentNotFound, TournamentNotJoinable
from models.registration import EntrantKind, Registration
from models.tournament import TournamentStatus
from services.tournament_registry import SlotReservation, TournamentRegistry


def test_open_starts_upcoming_and_empty(db_session, make_tournament):
    tournament = make_tournament(max_participants=4)

    assert tournament.status == TournamentStatus.UPCOMING
    assert tournament.current_participants == 0
    assert tournament.max_participants == 4


def test_get_unknown_tournament(db_session):
    with pytest.raises(TournamentNotFound):
        TournamentRegistry(db_session).get(404)


class TestTransitions:

    def test_forward_path(self, db_session, make_tournament):
        tournament = make_tournament()
        registry = TournamentRegistry(db_session)

        live = registry.transition(tournament.id, TournamentStatus.LIVE)
        assert live.status == TournamentStatus.LIVE
        assert live.end_time is None

        ended = registry.transition(tournament.id, TournamentStatus.ENDED)
        assert ended.status == TournamentStatus.ENDED
        assert ended.end_time is not None

    @pytest.mark.parametrize("path", [
        [TournamentStatus.ENDED],
        [TournamentStatus.UPCOMING],
        [TournamentStatus.LIVE, TournamentStatus.UPCOMING],
        [TournamentStatus.LIVE, TournamentStatus.LIVE],
        [TournamentStatus.LIVE, TournamentStatus.ENDED, TournamentStatus.LIVE],
    ])
    def test_invalid_transitions(self, db_session, make_tournament, path):
        tournament = make_tournament()
        registry = TournamentRegistry(db_session)
        *valid, invalid = path
        for status in valid:
            registry.transition(tournament.id, status)

        with pytest.raises(InvalidTransition):
            registry.transition(tournament.id, invalid)


class TestSlots:

    def test_reserve_and_release(self, db_session, make_tournament):
        tournament = make_tournament(max_participants=2)
        registry = TournamentRegistry(db_session)

        reservation = registry.reserve_slot(tournament.id)
        db_session.commit()
        assert registry.get(tournament.id).current_participants == 1

        assert registry.release(reservation) is True
        db_session.commit()
        assert registry.get(tournament.id).current_participants == 0

    def test_release_twice_is_a_noop(self, db_session, make_tournament):
        tournament = make_tournament(max_participants=2)
        registry = TournamentRegistry(db_session)
        registry.reserve_slot(tournament.id)
        reservation = registry.reserve_slot(tournament.id)
        db_session.commit()

        registry.release(reservation)
        assert registry.release(reservation) is False
        db_session.commit()

        assert registry.get(tournament.id).current_participants == 1

    def test_reserve_beyond_capacity(self, db_session, make_tournament):
        tournament = make_tournament(max_participants=1)
        registry = TournamentRegistry(db_session)
        registry.reserve_slot(tournament.id)
        db_session.commit()

        with pytest.raises(TournamentFull):
            registry.reserve_slot(tournament.id)
        assert registry.get(tournament.id).current_participants == 1

    def test_reserve_on_live_tournament(self, db_session, make_tournament):
        tournament = make_tournament()
        registry = TournamentRegistry(db_session)
        registry.transition(tournament.id, TournamentStatus.LIVE)

        with pytest.raises(TournamentNotJoinable):
            registry.reserve_slot(tournament.id)

    def test_confirm_requires_held_reservation(self, db_session, make_tournament):
        tournament = make_tournament()
        registry = TournamentRegistry(db_session)
        stranger = SlotReservation(tournament_id=tournament.id)

        with pytest.raises(ValueError):
            registry.confirm(stranger, Registration(
                tournament_id=tournament.id,
                entrant_kind=EntrantKind.USER,
                entrant_id=1,
                payer_id=1,
                ledger_entry_id=1,
            ))


def test_list_filters_by_status(db_session, make_tournament):
    upcoming = make_tournament(title="Upcoming Cup")
    live = make_tournament(title="Live Cup")
    registry = TournamentRegistry(db_session)
    registry.transition(live.id, TournamentStatus.LIVE)

    assert [t.id for t in registry.list_tournaments(status=[TournamentStatus.UPCOMING])] == [upcoming.id]
    assert len(registry.list_tournaments()) == 2


def test_verify_counters_on_empty_tournament(db_session, make_tournament):
    tournament = make_tournament()

    report = TournamentRegistry(db_session).verify_counters(tournament.id)

    assert report["consistent"] is True
    assert report["registrations"] == 0
