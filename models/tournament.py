from sqlalchemy import Column, Integer, String, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import Enum as SQLEnum
from db import Base
import enum


class TournamentStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    ENDED = "ended"


class TournamentMode(str, enum.Enum):
    SOLO = "solo"
    DUO = "duo"
    SQUAD = "squad"


# One-way progression, no skipping
NEXT_STATUS = {
    TournamentStatus.UPCOMING: TournamentStatus.LIVE,
    TournamentStatus.LIVE: TournamentStatus.ENDED,
}

# Minimum roster a team needs to enter a team mode
MIN_ROSTER = {
    TournamentMode.DUO: 2,
    TournamentMode.SQUAD: 4,
}


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    game = Column(String, nullable=True)  # opaque reference data
    description = Column(String, nullable=True)
    rules = Column(String, nullable=True)

    mode = Column(
        SQLEnum(TournamentMode, values_callable=lambda obj: [e.value for e in obj], name="tournament_mode"),
        nullable=False
    )
    status = Column(
        SQLEnum(TournamentStatus, values_callable=lambda obj: [e.value for e in obj], name="tournament_status"),
        default=TournamentStatus.UPCOMING,
        nullable=False
    )

    # Capacity. current_participants is only moved by slot reservation/release.
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, default=0, nullable=False)

    entry_fee = Column(Numeric(12, 2), nullable=False, default=0)
    prize_pool = Column(Numeric(12, 2), nullable=False, default=0)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    registrations = relationship("Registration", back_populates="tournament", lazy="select")

    __table_args__ = (
        CheckConstraint('max_participants > 0', name='ck_tournament_max_positive'),
        CheckConstraint(
            'current_participants >= 0 AND current_participants <= max_participants',
            name='ck_tournament_capacity'
        ),
    )
