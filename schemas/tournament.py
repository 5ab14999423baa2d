from pydantic import BaseModel, validator, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime
from models.tournament import TournamentMode, TournamentStatus
from models.registration import EntrantKind


class TournamentBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=100, description="Tournament title")
    game: Optional[str] = Field(None, max_length=64, description="Game reference, passed through")
    description: Optional[str] = Field(None, max_length=1000)
    rules: Optional[str] = Field(None, max_length=2000)
    mode: TournamentMode = TournamentMode.SOLO
    max_participants: int = Field(..., ge=1, le=10000)
    entry_fee: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    prize_pool: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    start_time: datetime
    end_time: Optional[datetime] = None


class TournamentCreate(TournamentBase):

    @validator('end_time')
    def validate_end_time(cls, v, values):
        if v and values.get('start_time') and v <= values['start_time']:
            raise ValueError('End time must be after start time')
        return v


class Tournament(TournamentBase):
    id: int
    status: TournamentStatus
    current_participants: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransitionRequest(BaseModel):
    to_status: TournamentStatus


class JoinRequest(BaseModel):
    entrant_kind: EntrantKind = EntrantKind.USER
    entrant_id: Optional[int] = Field(None, description="Team id for team modes, defaults to the caller for solo")


class Registration(BaseModel):
    id: int
    tournament_id: int
    entrant_kind: EntrantKind
    entrant_id: int
    payer_id: int
    ledger_entry_id: int
    registered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JoinResult(BaseModel):
    registration: Registration
    state: str
    replayed: bool


class TournamentConsistency(BaseModel):
    tournament_id: int
    current_participants: int
    registrations: int
    max_participants: int
    consistent: bool
