from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import Enum as SQLEnum
from db import Base
import enum


class EntrantKind(str, enum.Enum):
    USER = "user"
    TEAM = "team"


class Registration(Base):
    """Confirmed entry of a user or team, paid for by exactly one ledger debit"""
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    entrant_kind = Column(
        SQLEnum(EntrantKind, values_callable=lambda obj: [e.value for e in obj], name="entrant_kind"),
        nullable=False
    )
    entrant_id = Column(Integer, nullable=False)  # users.id or teams.id depending on entrant_kind
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=False, unique=True)
    registered_at = Column(DateTime(timezone=True), server_default=func.now())

    tournament = relationship("Tournament", back_populates="registrations")
    ledger_entry = relationship("LedgerEntry")

    __table_args__ = (
        UniqueConstraint('tournament_id', 'entrant_kind', 'entrant_id', name='unique_tournament_entrant'),
    )
