import secrets
import string

from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import IssueCodeExhausted

# No 0/O/1/I, codes get read out loud and typed by hand
CODE_ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "0O1I")


def generate_code(length: int = None) -> str:
    length = length or settings.join_code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def issue_unique_code(db: Session, column, what: str = "code", length: int = None) -> str:
    """
    Generate a code not present in `column`, retrying on collision.
    The unique constraint on the column still guards the final insert.
    """
    for _ in range(settings.code_issue_attempts):
        code = generate_code(length)
        taken = db.query(column).filter(column == code).first()
        if not taken:
            return code
    raise IssueCodeExhausted(what)
