from fastapi import HTTPException, status


class PlatformException(HTTPException):
    kind = "platform_error"

    def __init__(self, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


# Validation errors

class InvalidAmount(PlatformException):
    kind = "InvalidAmount"

    def __init__(self, amount=None):
        detail = "Amount must be greater than zero"
        if amount is not None:
            detail = f"{detail} (got {amount})"
        super().__init__(detail)


class InvalidEntrantKind(PlatformException):
    kind = "InvalidEntrantKind"

    def __init__(self, detail: str = "Entrant kind does not match tournament mode"):
        super().__init__(detail)


# Not found

class UserNotFound(PlatformException):
    kind = "UserNotFound"

    def __init__(self):
        super().__init__("User not found", status.HTTP_404_NOT_FOUND)


class TeamNotFound(PlatformException):
    kind = "TeamNotFound"

    def __init__(self):
        super().__init__("Team not found", status.HTTP_404_NOT_FOUND)


class TournamentNotFound(PlatformException):
    kind = "TournamentNotFound"

    def __init__(self):
        super().__init__("Tournament not found", status.HTTP_404_NOT_FOUND)


# Permission

class NotTeamCaptain(PlatformException):
    kind = "NotTeamCaptain"

    def __init__(self, action: str = "perform this action"):
        super().__init__(f"Only the team captain can {action}", status.HTTP_403_FORBIDDEN)


# State conflicts

class TeamFull(PlatformException):
    kind = "TeamFull"

    def __init__(self):
        super().__init__("Team is full", status.HTTP_409_CONFLICT)


class AlreadyMember(PlatformException):
    kind = "AlreadyMember"

    def __init__(self):
        super().__init__("Already a member of this team", status.HTTP_409_CONFLICT)


class NotTeamMember(PlatformException):
    kind = "NotTeamMember"

    def __init__(self):
        super().__init__("User is not a member of this team", status.HTTP_404_NOT_FOUND)


class LastMemberIsCaptain(PlatformException):
    kind = "LastMemberIsCaptain"

    def __init__(self):
        super().__init__(
            "Captain cannot leave while other members remain, transfer captaincy first",
            status.HTTP_409_CONFLICT,
        )


class DuplicateTeamName(PlatformException):
    kind = "DuplicateName"

    def __init__(self, name: str):
        super().__init__(f"Team name '{name}' is already taken", status.HTTP_409_CONFLICT)


class TournamentNotJoinable(PlatformException):
    kind = "TournamentNotJoinable"

    def __init__(self, detail: str = "Tournament registration is closed"):
        super().__init__(detail, status.HTTP_409_CONFLICT)


class TournamentFull(PlatformException):
    kind = "TournamentFull"

    def __init__(self):
        super().__init__("Tournament is full", status.HTTP_409_CONFLICT)


class TournamentNotEnded(PlatformException):
    kind = "TournamentNotEnded"

    def __init__(self):
        super().__init__("Prizes can only be awarded once the tournament has ended", status.HTTP_409_CONFLICT)


class InvalidTransition(PlatformException):
    kind = "InvalidTransition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Cannot move tournament from '{from_status}' to '{to_status}'",
            status.HTTP_409_CONFLICT,
        )


# Resource errors

class InsufficientFunds(PlatformException):
    kind = "InsufficientFunds"

    def __init__(self, balance=None, required=None):
        detail = "Insufficient balance"
        if balance is not None and required is not None:
            detail = f"Insufficient balance: {balance} available, {required} required"
        super().__init__(detail, status.HTTP_402_PAYMENT_REQUIRED)


# System faults

class IssueCodeExhausted(PlatformException):
    kind = "StorageUnavailable"

    def __init__(self, what: str = "code"):
        super().__init__(f"Could not issue a unique {what}, retry", status.HTTP_503_SERVICE_UNAVAILABLE)


class StorageUnavailable(PlatformException):
    kind = "StorageUnavailable"

    def __init__(self, detail: str = "Storage temporarily unavailable, retry with the same idempotency key"):
        super().__init__(detail, status.HTTP_503_SERVICE_UNAVAILABLE)


class DuplicateIdempotencyKey(Exception):
    """Raised by the ledger when a key was already committed; carries that entry."""

    def __init__(self, entry):
        self.entry = entry
        super().__init__(f"Idempotency key already committed: {entry.idempotency_key}")


class UserAlreadyExists(PlatformException):
    kind = "UserAlreadyExists"

    def __init__(self):
        super().__init__("User with this username or email already exists", status.HTTP_409_CONFLICT)


class ForbiddenAction(PlatformException):
    kind = "Forbidden"

    def __init__(self, detail: str = "Not allowed to perform this action"):
        super().__init__(detail, status.HTTP_403_FORBIDDEN)


class NotRegistered(PlatformException):
    kind = "NotRegistered"

    def __init__(self):
        super().__init__("User is not registered in this tournament", status.HTTP_409_CONFLICT)
