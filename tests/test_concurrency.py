"""
Concurrent writers against one database: every thread has its own session,
a barrier lines them up so the writes genuinely race.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from core.exceptions import InsufficientFunds, PlatformException, TeamFull, TournamentFull
from models.ledger_entry import LedgerEntry, LedgerEntryKind
from models.registration import Registration
from models.team_member import TeamMember
from services.registration_engine import RegistrationEngine
from services.team_registry import TeamRegistry
from services.tournament_registry import TournamentRegistry
from services.wallet_service import WalletService


def run_concurrently(session_factory, calls):
    """
    Run each call(session) in its own thread and session.
    Returns (result, None) or (None, exception) per call, in order.
    """
    barrier = threading.Barrier(len(calls))

    def worker(call):
        session = session_factory()
        try:
            barrier.wait()
            return call(session), None
        except PlatformException as exc:
            return None, exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(worker, calls))


def test_n_joins_for_k_slots(db_session, session_factory, make_user, make_tournament):
    """8 players race for 3 slots: exactly 3 confirmed, 5 rejected as full"""
    players = [make_user(balance="10.00") for _ in range(8)]
    tournament_id = make_tournament(max_participants=3, entry_fee="10.00").id
    player_ids = [p.id for p in players]

    results = run_concurrently(session_factory, [
        (lambda s, uid=uid: RegistrationEngine(s).join(tournament_id, uid)) for uid in player_ids
    ])

    confirmed = [outcome for outcome, error in results if outcome is not None]
    errors = [error for outcome, error in results if error is not None]
    assert len(confirmed) == 3
    assert len(errors) == 5
    assert all(isinstance(error, TournamentFull) for error in errors)

    registry = TournamentRegistry(db_session)
    assert registry.get(tournament_id).current_participants == 3
    assert registry.verify_counters(tournament_id)["consistent"] is True

    paid = {o.registration.payer_id for o in confirmed}
    wallet = WalletService(db_session)
    for uid in player_ids:
        expected = Decimal("0.00") if uid in paid else Decimal("10.00")
        assert wallet.current_balance(uid) == expected


def test_two_players_one_slot(db_session, session_factory, make_user, make_tournament):
    first_id = make_user(balance="5.00").id
    second_id = make_user(balance="5.00").id
    tournament_id = make_tournament(max_participants=1, entry_fee="5.00").id

    results = run_concurrently(session_factory, [
        lambda s: RegistrationEngine(s).join(tournament_id, first_id),
        lambda s: RegistrationEngine(s).join(tournament_id, second_id),
    ])

    assert sorted(error is None for _, error in results) == [False, True]
    assert db_session.query(Registration).count() == 1
    assert TournamentRegistry(db_session).get(tournament_id).current_participants == 1


def test_same_player_joins_in_parallel(db_session, session_factory, make_user, make_tournament):
    """Parallel retries of one join produce one registration and one debit"""
    player_id = make_user(balance="50.00").id
    tournament_id = make_tournament(max_participants=10, entry_fee="20.00").id

    results = run_concurrently(session_factory, [
        lambda s: RegistrationEngine(s).join(tournament_id, player_id) for _ in range(4)
    ])

    assert all(error is None for _, error in results)
    assert len({outcome.registration.id for outcome, _ in results}) == 1
    assert sum(1 for outcome, _ in results if not outcome.replayed) == 1
    assert WalletService(db_session).current_balance(player_id) == Decimal("30.00")
    assert TournamentRegistry(db_session).get(tournament_id).current_participants == 1


def test_parallel_fund_replays(db_session, session_factory, make_user):
    user_id = make_user().id

    results = run_concurrently(session_factory, [
        lambda s: WalletService(s).fund(user_id, "100.00", "abc") for _ in range(5)
    ])

    assert len({entry.id for entry, _ in results}) == 1
    assert WalletService(db_session).current_balance(user_id) == Decimal("100.00")


def test_parallel_debits_never_overdraw(db_session, session_factory, make_user):
    user_id = make_user(balance="100.00").id

    results = run_concurrently(session_factory, [
        (lambda s, i=i: WalletService(s).debit(user_id, "30.00", LedgerEntryKind.WITHDRAWAL, f"w-{i}"))
        for i in range(5)
    ])

    succeeded = [entry for entry, _ in results if entry is not None]
    failed = [error for _, error in results if error is not None]
    assert len(succeeded) == 3
    assert all(isinstance(error, InsufficientFunds) for error in failed)
    assert WalletService(db_session).current_balance(user_id) == Decimal("10.00")
    assert db_session.query(LedgerEntry).filter(LedgerEntry.kind == LedgerEntryKind.WITHDRAWAL).count() == 3


@pytest.mark.parametrize("joiners", [5, 8])
def test_parallel_team_joins_respect_capacity(db_session, session_factory, make_user, make_team, joiners):
    team = make_team()
    team_id, code = team.id, team.join_code
    user_ids = [make_user().id for _ in range(joiners)]

    results = run_concurrently(session_factory, [
        (lambda s, uid=uid: TeamRegistry(s).join_by_code(uid, code)) for uid in user_ids
    ])

    failed = [error for _, error in results if error is not None]
    assert len(failed) == max(0, joiners - 5)
    assert all(isinstance(error, TeamFull) for error in failed)
    assert db_session.query(TeamMember).filter(TeamMember.team_id == team_id).count() == min(6, joiners + 1)
