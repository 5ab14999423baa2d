"""
Ledger store: append-only entries, idempotency keys, balance and history
"""
from decimal import Decimal

import pytest

from api.crud.ledger_crud import append_entry, balance_of, get_entry_by_key, history, to_money
from core.exceptions import DuplicateIdempotencyKey
from models.ledger_entry import LedgerEntry, LedgerEntryKind


def test_to_money_normalises_driver_values():
    assert to_money(None) == Decimal("0.00")
    assert to_money(10) == Decimal("10.00")
    assert to_money(12.5) == Decimal("12.50")
    assert to_money("3.1") == Decimal("3.10")


def test_append_entry_stores_signed_amount(db_session, make_user):
    user = make_user()

    entry = append_entry(db_session, user.id, LedgerEntryKind.DEPOSIT, Decimal("25.00"), "k-1", "Top up")
    db_session.commit()

    stored = get_entry_by_key(db_session, "k-1")
    assert stored.id == entry.id
    assert stored.kind == LedgerEntryKind.DEPOSIT
    assert to_money(stored.amount) == Decimal("25.00")
    assert stored.description == "Top up"
    assert stored.created_at is not None


def test_duplicate_key_carries_existing_entry(db_session, make_user):
    user = make_user()
    first = append_entry(db_session, user.id, LedgerEntryKind.DEPOSIT, Decimal("10.00"), "same-key")
    db_session.commit()

    with pytest.raises(DuplicateIdempotencyKey) as exc_info:
        append_entry(db_session, user.id, LedgerEntryKind.DEPOSIT, Decimal("99.00"), "same-key")

    assert exc_info.value.entry.id == first.id
    assert db_session.query(LedgerEntry).count() == 1


def test_balance_is_sum_of_entries(db_session, make_user):
    user = make_user()
    other = make_user()
    append_entry(db_session, user.id, LedgerEntryKind.DEPOSIT, Decimal("100.00"), "a")
    append_entry(db_session, user.id, LedgerEntryKind.TOURNAMENT_ENTRY, Decimal("-30.00"), "b")
    append_entry(db_session, user.id, LedgerEntryKind.TOURNAMENT_WIN, Decimal("12.50"), "c")
    append_entry(db_session, other.id, LedgerEntryKind.DEPOSIT, Decimal("5.00"), "d")
    db_session.commit()

    assert balance_of(db_session, user.id) == Decimal("82.50")
    assert balance_of(db_session, other.id) == Decimal("5.00")


def test_balance_of_user_without_entries_is_zero(db_session, make_user):
    user = make_user()
    assert balance_of(db_session, user.id) == Decimal("0.00")


def test_history_is_newest_first_and_restartable(db_session, make_user):
    user = make_user()
    for i in range(5):
        append_entry(db_session, user.id, LedgerEntryKind.DEPOSIT, Decimal("1.00"), f"h-{i}")
    db_session.commit()

    entries = history(db_session, user.id)
    first_pass = [e.idempotency_key for e in entries]
    second_pass = [e.idempotency_key for e in entries]

    assert first_pass == ["h-4", "h-3", "h-2", "h-1", "h-0"]
    assert second_pass == first_pass
    assert entries.count() == 5
    assert [e.idempotency_key for e in entries.page(skip=1, limit=2)] == ["h-3", "h-2"]


def test_history_only_lists_own_entries(db_session, make_user):
    user = make_user()
    other = make_user()
    append_entry(db_session, other.id, LedgerEntryKind.DEPOSIT, Decimal("1.00"), "theirs")
    db_session.commit()

    assert list(history(db_session, user.id)) == []
