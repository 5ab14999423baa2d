from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from api.deps.db import get_db
from core.auth import get_current_active_user, get_admin
from models.user import User
from schemas.team import (
    Team, TeamCreate, TeamMember, JoinByCodeRequest, TransferCaptainRequest, TeamConsistency
)
from services.team_registry import TeamRegistry

router = APIRouter(prefix="/teams", tags=["Teams"])


@router.post("/", response_model=Team, status_code=201)
def create_team(
    team: TeamCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Create a team, the caller becomes captain"""
    return TeamRegistry(db).create(current_user.id, team.name, team.country, team.logo)


@router.get("/", response_model=List[Team])
def list_teams(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Active teams, oldest first"""
    return TeamRegistry(db).list_teams(skip, limit)


@router.post("/join-by-code", response_model=TeamMember)
def join_team_by_code(
    request: JoinByCodeRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return TeamRegistry(db).join_by_code(current_user.id, request.join_code)


@router.get("/{team_id}", response_model=Team)
def get_team(team_id: int, db: Session = Depends(get_db)):
    return TeamRegistry(db).get_team(team_id)


@router.get("/{team_id}/members", response_model=List[TeamMember])
def get_team_members(team_id: int, db: Session = Depends(get_db)):
    return TeamRegistry(db).members(team_id)


@router.delete("/{team_id}/members/{user_id}", response_model=Team)
def remove_team_member(
    team_id: int,
    user_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Captain removes a member, or a member leaves"""
    return TeamRegistry(db).remove_member(team_id, user_id, current_user.id)


@router.post("/{team_id}/transfer-captain", response_model=Team)
def transfer_captain(
    team_id: int,
    request: TransferCaptainRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return TeamRegistry(db).transfer_captain(team_id, request.new_captain_id, current_user.id)


@router.get("/{team_id}/consistency", response_model=TeamConsistency)
def team_consistency(
    team_id: int,
    admin: User = Depends(get_admin),
    db: Session = Depends(get_db)
):
    return TeamRegistry(db).verify_counters(team_id)
