from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from models.ledger_entry import LedgerEntryKind


class FundRequest(BaseModel):
    # Range is checked by the wallet service so the failure is InvalidAmount
    amount: Decimal
    idempotency_key: str = Field(..., min_length=1, max_length=128)


class WithdrawRequest(FundRequest):
    pass


class PrizeAward(BaseModel):
    user_id: int
    amount: Decimal


class LedgerEntryRead(BaseModel):
    id: int
    user_id: int
    kind: LedgerEntryKind
    amount: Decimal
    description: Optional[str] = None
    idempotency_key: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletOperationResult(BaseModel):
    entry: LedgerEntryRead
    balance: Decimal


class Balance(BaseModel):
    user_id: int
    balance: Decimal


class TransactionHistory(BaseModel):
    total: int
    items: List[LedgerEntryRead]
