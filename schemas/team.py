from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from models.team_member import TeamRole


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, description="Team name")
    country: Optional[str] = Field(None, max_length=64)
    logo: Optional[str] = None


class JoinByCodeRequest(BaseModel):
    join_code: str = Field(..., min_length=1, max_length=32)


class TransferCaptainRequest(BaseModel):
    new_captain_id: int


class Team(BaseModel):
    id: int
    name: str
    country: Optional[str] = None
    logo: Optional[str] = None
    captain_id: Optional[int] = None
    join_code: str
    max_members: int
    current_members: int
    wins: int
    matches_played: int
    rank: int
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamMember(BaseModel):
    id: int
    team_id: int
    user_id: int
    role: TeamRole
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamConsistency(BaseModel):
    team_id: int
    current_members: int
    counted_members: int
    captains: int
    consistent: bool
