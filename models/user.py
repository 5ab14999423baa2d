from sqlalchemy import Column, Integer, String, DateTime, Boolean, select, func as sa_func
from sqlalchemy.orm import relationship, column_property
from sqlalchemy.sql import func
from sqlalchemy.types import Enum as SQLEnum
from db import Base
from core.roles import UserRole
from models.ledger_entry import LedgerEntry


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    country = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    bonus_coins = Column(Integer, default=0, nullable=False)
    referral_code = Column(String, unique=True, index=True, nullable=False)
    referred_by = Column(String, nullable=True)
    role = Column(
        SQLEnum(UserRole, values_callable=lambda obj: [e.value for e in obj], name="user_role"),
        default=UserRole.USER,
        nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)
    # Bumped by every wallet write, the UPDATE itself is the per-user lock
    ledger_version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Read-side projection, display only. Debits recompute inside their own lock.
    wallet_balance = column_property(
        select(sa_func.coalesce(sa_func.sum(LedgerEntry.amount), 0))
        .where(LedgerEntry.user_id == id)
        .correlate_except(LedgerEntry)
        .scalar_subquery()
    )

    ledger_entries = relationship("LedgerEntry", back_populates="user", lazy="dynamic")
    team_memberships = relationship("TeamMember", back_populates="user")
