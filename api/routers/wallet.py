from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from api.deps.db import get_db
from core.auth import get_current_active_user
from models.ledger_entry import LedgerEntryKind
from models.user import User
from schemas.wallet import (
    Balance, FundRequest, WithdrawRequest, WalletOperationResult, TransactionHistory
)
from services.wallet_service import WalletService

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.post("/add-money", response_model=WalletOperationResult)
def add_money(
    request: FundRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Credit a deposit confirmed by the payment provider.
    Retrying with the same idempotency_key returns the original entry.
    """
    wallet = WalletService(db)
    entry = wallet.fund(current_user.id, request.amount, request.idempotency_key)
    return {"entry": entry, "balance": wallet.current_balance(current_user.id)}


@router.post("/withdraw", response_model=WalletOperationResult)
def withdraw(
    request: WithdrawRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    wallet = WalletService(db)
    entry = wallet.debit(
        current_user.id,
        request.amount,
        LedgerEntryKind.WITHDRAWAL,
        f"withdrawal:{current_user.id}:{request.idempotency_key}",
        description="Wallet withdrawal",
    )
    return {"entry": entry, "balance": wallet.current_balance(current_user.id)}


@router.get("/balance", response_model=Balance)
def get_balance(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return {"user_id": current_user.id, "balance": WalletService(db).current_balance(current_user.id)}


@router.get("/transactions", response_model=TransactionHistory)
def get_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Ledger entries, newest first"""
    history = WalletService(db).history(current_user.id)
    return {"total": history.count(), "items": history.page(skip, limit)}
