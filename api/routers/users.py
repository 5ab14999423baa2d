from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from api.deps.db import get_db
from api.crud.user import create_user, deactivate_user, get_user_by_id
from core.auth import get_current_active_user, get_admin
from core.exceptions import UserNotFound
from schemas.user import UserCreate, UserRead
from schemas.team import Team
from services.team_registry import TeamRegistry
from models.user import User as UserModel

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/", response_model=UserRead, status_code=201)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Create the platform profile for an identity (wallet starts empty)"""
    return create_user(db, user)


@router.get("/me", response_model=UserRead)
def read_me(
    current_user: UserModel = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return get_user_by_id(db, current_user.id)


@router.get("/{user_id}", response_model=UserRead)
def get_user_profile(user_id: int, db: Session = Depends(get_db)):
    user = get_user_by_id(db, user_id)
    if not user:
        raise UserNotFound()
    return user


@router.get("/{user_id}/teams", response_model=List[Team])
def get_user_teams(user_id: int, db: Session = Depends(get_db)):
    if not get_user_by_id(db, user_id):
        raise UserNotFound()
    return TeamRegistry(db).user_teams(user_id)


@router.post("/{user_id}/deactivate", response_model=UserRead)
def deactivate(
    user_id: int,
    admin: UserModel = Depends(get_admin),
    db: Session = Depends(get_db)
):
    """Users are never deleted, only deactivated (admin)"""
    return deactivate_user(db, user_id)
