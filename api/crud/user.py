import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.codes import issue_unique_code, normalize_code
from core.config import settings
from core.exceptions import UserAlreadyExists, UserNotFound
from models.ledger_entry import LedgerEntryKind
from models.user import User
from schemas.user import UserCreate
from services.wallet_service import WalletService

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).populate_existing().first()


def get_user_by_referral_code(db: Session, code: str):
    return db.query(User).filter(User.referral_code == normalize_code(code)).first()


def create_user(db: Session, user: UserCreate) -> User:
    """
    Create a user with a unique referral code. A valid `referred_by` code
    credits the referrer's wallet and bonus coins once.
    The user and the referral reward commit together or not at all.
    """
    clash = db.query(User.id).filter(
        or_(User.username == user.username, User.email == user.email)
    ).first()
    if clash:
        raise UserAlreadyExists()

    referrer = get_user_by_referral_code(db, user.referred_by) if user.referred_by else None

    db_user = User(
        username=user.username,
        email=user.email,
        phone=user.phone,
        country=user.country,
        avatar=user.avatar,
        referral_code=issue_unique_code(db, User.referral_code, "referral code"),
        referred_by=referrer.referral_code if referrer else None,
    )
    try:
        db.add(db_user)
        db.flush()
        if referrer:
            reward_referrer(db, referrer.id, db_user.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise UserAlreadyExists()
    except Exception:
        db.rollback()
        raise

    logger.info(f"User created: id={db_user.id} username={db_user.username!r}")
    if referrer:
        logger.info(f"Referral bonus: referrer={referrer.id} new_user={db_user.id}")
    return get_user_by_id(db, db_user.id)


def reward_referrer(db: Session, referrer_id: int, new_user_id: int):
    """
    Bonus coins plus the referral_bonus credit, inside the caller's
    transaction. The wallet lock is taken before the coins are touched.
    """
    WalletService(db).credit(
        referrer_id,
        settings.referral_bonus_amount,
        LedgerEntryKind.REFERRAL_BONUS,
        f"referral:{new_user_id}",
        description="Referral Bonus - Friend joined",
        commit=False,
    )
    referrer = get_user_by_id(db, referrer_id)
    referrer.bonus_coins = (referrer.bonus_coins or 0) + settings.referral_bonus_coins


def deactivate_user(db: Session, user_id: int) -> User:
    db_user = get_user_by_id(db, user_id)
    if not db_user:
        raise UserNotFound()
    db_user.is_active = False
    db.commit()
    db.refresh(db_user)
    logger.info(f"User {user_id} deactivated")
    return db_user
