from sqlalchemy import update
from sqlalchemy.orm import Session

from models.user import User
from models.team import Team


def lock_user_wallet(db: Session, user_id: int) -> bool:
    """
    Serialize wallet writes for one user.
    The version bump takes the row lock (Postgres) or the write lock (SQLite)
    and holds it until the surrounding transaction ends.
    Returns False when the user does not exist.
    """
    result = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(ledger_version=User.ledger_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def lock_team_roster(db: Session, team_id: int) -> bool:
    """Serialize roster changes for one active team. False if missing or archived."""
    result = db.execute(
        update(Team)
        .where(Team.id == team_id, Team.archived_at.is_(None))
        .values(lock_version=Team.lock_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
