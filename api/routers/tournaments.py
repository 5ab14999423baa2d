from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from api.deps.db import get_db
from core.auth import get_current_active_user, get_admin
from models.tournament import TournamentStatus
from models.user import User
from schemas.tournament import (
    Tournament, TournamentCreate, TransitionRequest, JoinRequest, JoinResult,
    Registration, TournamentConsistency
)
from schemas.wallet import PrizeAward, LedgerEntryRead
from services.registration_engine import RegistrationEngine
from services.tournament_registry import TournamentRegistry

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


@router.post("/", response_model=Tournament, status_code=201)
def open_tournament(
    tournament: TournamentCreate,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db)
):
    """Open a tournament for registration (admin)"""
    return TournamentRegistry(db).open(tournament.dict())


@router.get("/", response_model=List[Tournament])
def list_tournaments(
    skip: int = 0,
    limit: int = 100,
    status: Optional[List[TournamentStatus]] = Query(None, description="Filter by tournament status"),
    db: Session = Depends(get_db)
):
    return TournamentRegistry(db).list_tournaments(status=status, skip=skip, limit=limit)


@router.get("/{tournament_id}", response_model=Tournament)
def get_tournament(tournament_id: int, db: Session = Depends(get_db)):
    return TournamentRegistry(db).get(tournament_id)


@router.get("/{tournament_id}/registrations", response_model=List[Registration])
def get_registrations(tournament_id: int, db: Session = Depends(get_db)):
    return TournamentRegistry(db).registrations(tournament_id)


@router.post("/{tournament_id}/join", response_model=JoinResult)
def join_tournament(
    tournament_id: int,
    request: Optional[JoinRequest] = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Join as a player (solo) or register a team (duo/squad, captain only).
    The entry fee is charged in the same step; calling again is a no-op.
    """
    request = request or JoinRequest()
    outcome = RegistrationEngine(db).join(
        tournament_id,
        current_user.id,
        entrant_kind=request.entrant_kind,
        entrant_id=request.entrant_id,
    )
    return {
        "registration": outcome.registration,
        "state": outcome.state.value,
        "replayed": outcome.replayed,
    }


@router.post("/{tournament_id}/transition", response_model=Tournament)
def transition_tournament(
    tournament_id: int,
    request: TransitionRequest,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db)
):
    """Move the tournament one step: upcoming -> live -> ended (admin)"""
    return TournamentRegistry(db).transition(tournament_id, request.to_status)


@router.post("/{tournament_id}/prizes", response_model=LedgerEntryRead)
def award_prize(
    tournament_id: int,
    award: PrizeAward,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db)
):
    """Credit a prize to a player of an ended tournament (admin)"""
    return RegistrationEngine(db).award_prize(tournament_id, award.user_id, award.amount)


@router.get("/{tournament_id}/consistency", response_model=TournamentConsistency)
def tournament_consistency(
    tournament_id: int,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db)
):
    return TournamentRegistry(db).verify_counters(tournament_id)
