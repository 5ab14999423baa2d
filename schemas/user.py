# schemas/user.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime
from core.roles import UserRole


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    phone: Optional[str] = None
    country: Optional[str] = Field(None, max_length=64)
    avatar: Optional[str] = None


class UserCreate(UserBase):
    referred_by: Optional[str] = Field(None, max_length=32, description="Referral code of the inviting user")


class UserRead(UserBase):
    id: int
    role: UserRole
    is_active: bool
    referral_code: str
    referred_by: Optional[str] = None
    bonus_coins: int
    wallet_balance: Decimal = Decimal("0.00")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
