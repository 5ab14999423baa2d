from sqlalchemy import Column, Integer, String, DateTime, select, func as sa_func
from sqlalchemy.orm import relationship, column_property
from sqlalchemy.sql import func
from db import Base
from models.team_member import TeamMember, TeamRole


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    logo = Column(String, nullable=True)
    country = Column(String, nullable=True)
    join_code = Column(String, unique=True, index=True, nullable=False)  # immutable once issued
    max_members = Column(Integer, default=6, nullable=False)
    wins = Column(Integer, default=0, nullable=False)
    matches_played = Column(Integer, default=0, nullable=False)
    rank = Column(Integer, default=0, nullable=False)
    # Bumped by roster changes, the UPDATE itself is the per-team lock
    lock_version = Column(Integer, default=0, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Derived from membership rows, never written directly
    current_members = column_property(
        select(sa_func.count(TeamMember.id))
        .where(TeamMember.team_id == id)
        .correlate_except(TeamMember)
        .scalar_subquery()
    )
    captain_id = column_property(
        select(TeamMember.user_id)
        .where(TeamMember.team_id == id, TeamMember.role == TeamRole.CAPTAIN)
        .correlate_except(TeamMember)
        .scalar_subquery()
    )

    members = relationship("TeamMember", back_populates="team", order_by="TeamMember.joined_at")

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None
