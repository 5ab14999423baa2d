"""
Ledger store: the only write path for balances.

Entries are appended inside the caller's transaction (flush, no commit) so a
debit can share one atomic scope with the registration that it pays for.
Nothing here updates or deletes an entry.
"""
from decimal import Decimal
from typing import Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import DuplicateIdempotencyKey
from models.ledger_entry import LedgerEntry, LedgerEntryKind

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalise driver output (int/float/str/Decimal) to a 2-place Decimal"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


def get_entry_by_key(db: Session, idempotency_key: str) -> Optional[LedgerEntry]:
    return db.query(LedgerEntry).filter(LedgerEntry.idempotency_key == idempotency_key).first()


def append_entry(
    db: Session,
    user_id: int,
    kind: LedgerEntryKind,
    amount: Decimal,
    idempotency_key: str,
    description: Optional[str] = None
) -> LedgerEntry:
    """
    Append a signed entry. Raises DuplicateIdempotencyKey carrying the already
    committed entry when the key was used before.
    A concurrent insert of the same key surfaces as IntegrityError at flush.
    """
    existing = get_entry_by_key(db, idempotency_key)
    if existing:
        raise DuplicateIdempotencyKey(existing)

    entry = LedgerEntry(
        user_id=user_id,
        kind=kind,
        amount=to_money(amount),
        idempotency_key=idempotency_key,
        description=description
    )
    db.add(entry)
    db.flush()
    return entry


def balance_of(db: Session, user_id: int) -> Decimal:
    """Sum of all entries for the user, resolved at read time"""
    total = db.query(
        func.coalesce(func.sum(LedgerEntry.amount), 0)
    ).filter(LedgerEntry.user_id == user_id).scalar()
    return to_money(total)


class LedgerHistory:
    """
    Lazy newest-first view over a user's entries.
    Every iteration runs a fresh query, so the sequence can be restarted.
    """

    def __init__(self, db: Session, user_id: int, batch_size: int = 100):
        self.db = db
        self.user_id = user_id
        self.batch_size = batch_size

    def _query(self):
        return self.db.query(LedgerEntry).filter(
            LedgerEntry.user_id == self.user_id
        ).order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(self._query().yield_per(self.batch_size))

    def page(self, skip: int = 0, limit: int = 50) -> List[LedgerEntry]:
        return self._query().offset(skip).limit(limit).all()

    def count(self) -> int:
        return self.db.query(LedgerEntry).filter(LedgerEntry.user_id == self.user_id).count()


def history(db: Session, user_id: int) -> LedgerHistory:
    return LedgerHistory(db, user_id)
