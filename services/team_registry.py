import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.crud.locking import lock_team_roster
from core.codes import issue_unique_code, normalize_code
from core.config import settings
from core.exceptions import (
    AlreadyMember, DuplicateTeamName, LastMemberIsCaptain, NotTeamCaptain,
    NotTeamMember, TeamFull, TeamNotFound, UserNotFound
)
from models.team import Team
from models.team_member import TeamMember, TeamRole
from models.user import User

logger = logging.getLogger(__name__)


class TeamRegistry:
    """
    Team identity, roster and join codes.

    Roster writes take the per-team lock before counting members, so the
    capacity check and the insert see the same roster.
    """

    def __init__(self, db: Session):
        self.db = db

    # Reads

    def get_team(self, team_id: int, include_archived: bool = True) -> Team:
        query = self.db.query(Team).filter(Team.id == team_id)
        if not include_archived:
            query = query.filter(Team.archived_at.is_(None))
        team = query.populate_existing().first()
        if not team:
            raise TeamNotFound()
        return team

    def get_membership(self, team_id: int, user_id: int) -> Optional[TeamMember]:
        return self.db.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id
        ).first()

    def members(self, team_id: int) -> List[TeamMember]:
        self.get_team(team_id)
        return self.db.query(TeamMember).filter(
            TeamMember.team_id == team_id
        ).order_by(TeamMember.joined_at, TeamMember.id).all()

    def user_teams(self, user_id: int) -> List[Team]:
        return self.db.query(Team).join(TeamMember, TeamMember.team_id == Team.id).filter(
            TeamMember.user_id == user_id,
            Team.archived_at.is_(None)
        ).all()

    def list_teams(self, skip: int = 0, limit: int = 50) -> List[Team]:
        return self.db.query(Team).filter(
            Team.archived_at.is_(None)
        ).order_by(Team.created_at, Team.id).offset(skip).limit(limit).all()

    def roster_size(self, team_id: int) -> int:
        return self.db.query(TeamMember).filter(TeamMember.team_id == team_id).count()

    # Writes

    def create(self, captain_id: int, name: str, country: Optional[str] = None, logo: Optional[str] = None) -> Team:
        """Create a team with a freshly issued join code, captain as first member"""
        name = (name or "").strip()
        if not name:
            raise ValueError("Team name is required")
        if not self.db.query(User.id).filter(User.id == captain_id).first():
            raise UserNotFound()

        duplicate = self.db.query(Team.id).filter(
            func.lower(Team.name) == name.lower(),
            Team.archived_at.is_(None)
        ).first()
        if duplicate:
            raise DuplicateTeamName(name)

        team = Team(
            name=name,
            country=country,
            logo=logo,
            join_code=issue_unique_code(self.db, Team.join_code, "join code"),
            max_members=settings.team_max_members,
        )
        try:
            self.db.add(team)
            self.db.flush()
            self.db.add(TeamMember(team_id=team.id, user_id=captain_id, role=TeamRole.CAPTAIN))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Team created: id={team.id} name={name!r} captain={captain_id}")
        return self.get_team(team.id)

    def join_by_code(self, user_id: int, code: str) -> TeamMember:
        code = normalize_code(code)
        team = self.db.query(Team).filter(
            Team.join_code == code,
            Team.archived_at.is_(None)
        ).first()
        if not team or not code:
            raise TeamNotFound()
        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise UserNotFound()

        try:
            if not lock_team_roster(self.db, team.id):
                raise TeamNotFound()
            if self.get_membership(team.id, user_id):
                raise AlreadyMember()
            if self.roster_size(team.id) >= team.max_members:
                raise TeamFull()

            membership = TeamMember(team_id=team.id, user_id=user_id, role=TeamRole.MEMBER)
            self.db.add(membership)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyMember()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(membership)
        logger.info(f"User {user_id} joined team {team.id} by code")
        return membership

    def remove_member(self, team_id: int, user_id: int, acting_user_id: int) -> Team:
        """
        Captain may remove anyone, members may remove themselves.
        The captain can only leave as the last member, which archives the team.
        """
        try:
            if not lock_team_roster(self.db, team_id):
                raise TeamNotFound()

            acting = self.get_membership(team_id, acting_user_id)
            target = self.get_membership(team_id, user_id)
            if not target:
                raise NotTeamMember()
            if acting_user_id != user_id and (not acting or acting.role != TeamRole.CAPTAIN):
                raise NotTeamCaptain("remove other members")

            archive = False
            if target.role == TeamRole.CAPTAIN:
                if self.roster_size(team_id) > 1:
                    raise LastMemberIsCaptain()
                archive = True

            self.db.delete(target)
            if archive:
                team = self.db.query(Team).filter(Team.id == team_id).first()
                team.archived_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if archive:
            logger.info(f"Team {team_id} archived, last member {user_id} left")
        else:
            logger.info(f"User {user_id} removed from team {team_id} by {acting_user_id}")
        return self.get_team(team_id)

    def transfer_captain(self, team_id: int, new_captain_id: int, acting_user_id: int) -> Team:
        try:
            if not lock_team_roster(self.db, team_id):
                raise TeamNotFound()

            current = self.get_membership(team_id, acting_user_id)
            if not current or current.role != TeamRole.CAPTAIN:
                raise NotTeamCaptain("transfer captaincy")
            target = self.get_membership(team_id, new_captain_id)
            if not target:
                raise NotTeamMember()

            if target.id != current.id:
                # Demote first, one captain per team is enforced by a unique index
                current.role = TeamRole.MEMBER
                self.db.flush()
                target.role = TeamRole.CAPTAIN
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Team {team_id} captaincy: {acting_user_id} -> {new_captain_id}")
        return self.get_team(team_id)

    def verify_counters(self, team_id: int) -> dict:
        team = self.get_team(team_id)
        members = self.roster_size(team_id)
        captains = self.db.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.role == TeamRole.CAPTAIN
        ).count()
        consistent = (
            team.current_members == members
            and members <= team.max_members
            and (captains == 1 or (team.is_archived and members == 0))
        )
        return {
            "team_id": team_id,
            "current_members": team.current_members,
            "counted_members": members,
            "captains": captains,
            "consistent": consistent,
        }
