from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import Enum as SQLEnum
from db import Base
import enum


class TeamRole(str, enum.Enum):
    CAPTAIN = "captain"
    MEMBER = "member"


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(
        SQLEnum(TeamRole, values_callable=lambda obj: [e.value for e in obj], name="team_role"),
        default=TeamRole.MEMBER,
        nullable=False
    )
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="team_memberships")

    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='unique_team_member'),
        # At most one captain per team
        Index(
            'unique_team_captain', 'team_id',
            unique=True,
            sqlite_where=text("role = 'captain'"),
            postgresql_where=text("role = 'captain'"),
        ),
    )
