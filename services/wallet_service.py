import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.crud.ledger_crud import (
    CENT, append_entry, balance_of, get_entry_by_key, history, LedgerHistory
)
from api.crud.locking import lock_user_wallet
from core.exceptions import (
    DuplicateIdempotencyKey, InsufficientFunds, InvalidAmount, UserNotFound
)
from models.ledger_entry import LedgerEntry, LedgerEntryKind, CREDIT_KINDS, DEBIT_KINDS
from models.user import User

logger = logging.getLogger(__name__)


def validate_amount(amount, allow_zero: bool = False) -> Decimal:
    """Positive amount with at most two decimal places"""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(amount)

    if not value.is_finite() or value != value.quantize(CENT):
        raise InvalidAmount(amount)
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmount(amount)
    return value.quantize(CENT)


def deposit_key(user_id: int, client_key: str) -> str:
    """Client keys are scoped per user so two users can never collide"""
    return f"deposit:{user_id}:{client_key}"


class WalletService:
    """
    Funding and debits over the ledger.

    Every write locks the user's wallet first and recomputes the balance inside
    that lock, so two concurrent debits can never both see a stale balance.
    """

    def __init__(self, db: Session):
        self.db = db

    def current_balance(self, user_id: int) -> Decimal:
        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise UserNotFound()
        return balance_of(self.db, user_id)

    def history(self, user_id: int) -> LedgerHistory:
        return history(self.db, user_id)

    def fund(self, user_id: int, amount, idempotency_key: str) -> LedgerEntry:
        """Credit a verified deposit. Replaying the same key returns the first entry."""
        value = validate_amount(amount)
        key = deposit_key(user_id, idempotency_key)
        return self._commit_write(
            key,
            lambda: self._credit(user_id, value, LedgerEntryKind.DEPOSIT, key, "Wallet deposit")
        )

    def credit(
        self,
        user_id: int,
        amount,
        kind: LedgerEntryKind,
        idempotency_key: str,
        description: Optional[str] = None,
        commit: bool = True
    ) -> LedgerEntry:
        """
        System credits (prizes, referral bonuses) with an engine-built key.
        commit=False works as for `debit`.
        """
        if kind not in CREDIT_KINDS:
            raise ValueError(f"{kind.value} is not a credit kind")
        value = validate_amount(amount)

        def write():
            return self._credit(user_id, value, kind, idempotency_key, description)

        if not commit:
            return write()
        return self._commit_write(idempotency_key, write)

    def debit(
        self,
        user_id: int,
        amount,
        kind: LedgerEntryKind,
        idempotency_key: str,
        description: Optional[str] = None,
        commit: bool = True
    ) -> LedgerEntry:
        """
        Debit `amount` from the user's wallet.

        With commit=False the entry is only flushed and the caller owns the
        transaction; DuplicateIdempotencyKey then propagates to the caller.
        Zero is accepted only for tournament entries (free tournaments).
        """
        if kind not in DEBIT_KINDS:
            raise ValueError(f"{kind.value} is not a debit kind")
        value = validate_amount(amount, allow_zero=kind == LedgerEntryKind.TOURNAMENT_ENTRY)

        def write():
            return self._debit(user_id, value, kind, idempotency_key, description)

        if not commit:
            return write()
        return self._commit_write(idempotency_key, write)

    def _credit(self, user_id, value, kind, key, description) -> LedgerEntry:
        if not lock_user_wallet(self.db, user_id):
            raise UserNotFound()
        entry = append_entry(self.db, user_id, kind, value, key, description)
        logger.info(f"Ledger credit: user={user_id} kind={kind.value} amount={value} entry={entry.id}")
        return entry

    def _debit(self, user_id, value, kind, key, description) -> LedgerEntry:
        if not lock_user_wallet(self.db, user_id):
            raise UserNotFound()

        # Replay check before the balance check, a retried debit must not fail on funds
        existing = get_entry_by_key(self.db, key)
        if existing:
            raise DuplicateIdempotencyKey(existing)

        balance = balance_of(self.db, user_id)
        if balance < value:
            raise InsufficientFunds(balance=balance, required=value)

        entry = append_entry(self.db, user_id, kind, -value, key, description)
        logger.info(f"Ledger debit: user={user_id} kind={kind.value} amount={value} entry={entry.id}")
        return entry

    def _commit_write(self, key: str, write: Callable[[], LedgerEntry]) -> LedgerEntry:
        try:
            entry = write()
            self.db.commit()
        except DuplicateIdempotencyKey as dup:
            logger.info(f"Idempotent replay for key={key}, returning entry {dup.entry.id}")
            self.db.rollback()
            self.db.refresh(dup.entry)
            return dup.entry
        except IntegrityError:
            # Lost an insert race on the same key, the winner's entry is the outcome
            self.db.rollback()
            existing = get_entry_by_key(self.db, key)
            if existing is None:
                raise
            logger.info(f"Idempotent replay (race) for key={key}, returning entry {existing.id}")
            return existing
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(entry)
        return entry
