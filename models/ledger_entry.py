from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import Enum as SQLEnum
from db import Base
import enum


class LedgerEntryKind(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TOURNAMENT_ENTRY = "tournament_entry"
    TOURNAMENT_WIN = "tournament_win"
    REFERRAL_BONUS = "referral_bonus"


CREDIT_KINDS = {LedgerEntryKind.DEPOSIT, LedgerEntryKind.TOURNAMENT_WIN, LedgerEntryKind.REFERRAL_BONUS}
DEBIT_KINDS = {LedgerEntryKind.WITHDRAWAL, LedgerEntryKind.TOURNAMENT_ENTRY}


class LedgerEntry(Base):
    """
    Immutable signed money movement. A user's balance is the sum of their entries.
    Rows are only ever inserted.
    """
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(
        SQLEnum(LedgerEntryKind, values_callable=lambda obj: [e.value for e in obj], name="ledger_entry_kind"),
        nullable=False
    )
    amount = Column(Numeric(12, 2), nullable=False)  # positive credits, negative debits
    description = Column(String, nullable=True)
    idempotency_key = Column(String(200), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="ledger_entries")

    __table_args__ = (
        Index("ix_ledger_entries_user_created", "user_id", "created_at"),
    )
