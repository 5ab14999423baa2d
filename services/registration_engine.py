"""
Tournament join orchestration.

A join attempt moves through

    VALIDATING -> SLOT_RESERVED -> FEE_DEBITED -> CONFIRMED

and leaves early as REJECTED (nothing held, nothing moved) or COMPENSATED
(slot was held, then released because the debit or a later step failed).
Slot, debit and registration share one transaction: callers see either all
three or none of them.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.crud.locking import lock_team_roster
from core.exceptions import (
    DuplicateIdempotencyKey, ForbiddenAction, InvalidEntrantKind, NotRegistered, NotTeamCaptain,
    StorageUnavailable, TeamNotFound, TournamentNotEnded, TournamentNotJoinable, UserNotFound
)
from models.ledger_entry import LedgerEntry, LedgerEntryKind
from models.registration import EntrantKind, Registration
from models.team_member import TeamMember, TeamRole
from models.tournament import Tournament, TournamentMode, TournamentStatus, MIN_ROSTER
from models.user import User
from services.team_registry import TeamRegistry
from services.tournament_registry import SlotReservation, TournamentRegistry
from services.wallet_service import WalletService

logger = logging.getLogger(__name__)


class _ConcurrentJoin(Exception):
    """The same entrant was confirmed by a parallel attempt"""


class JoinState(str, enum.Enum):
    VALIDATING = "validating"
    SLOT_RESERVED = "slot_reserved"
    FEE_DEBITED = "fee_debited"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPENSATED = "compensated"


@dataclass
class JoinOutcome:
    registration: Registration
    state: JoinState
    replayed: bool = False


def entry_key(tournament_id: int, entrant_kind: EntrantKind, entrant_id: int) -> str:
    """Deterministic idempotency key of the entry-fee debit"""
    return f"tournament:{tournament_id}:{entrant_kind.value}:{entrant_id}"


class RegistrationEngine:

    def __init__(self, db: Session):
        self.db = db
        self.tournaments = TournamentRegistry(db)
        self.teams = TeamRegistry(db)
        self.wallet = WalletService(db)
        self.state = JoinState.VALIDATING

    def find_registration(self, tournament_id: int, entrant_kind: EntrantKind, entrant_id: int) -> Optional[Registration]:
        return self.db.query(Registration).filter(
            Registration.tournament_id == tournament_id,
            Registration.entrant_kind == entrant_kind,
            Registration.entrant_id == entrant_id
        ).populate_existing().first()

    def join(
        self,
        tournament_id: int,
        acting_user_id: int,
        entrant_kind: EntrantKind = EntrantKind.USER,
        entrant_id: Optional[int] = None
    ) -> JoinOutcome:
        """
        Register a user (solo) or a team (duo/squad) and charge the entry fee.
        The acting user pays: themself for solo, the captain for teams.
        Repeating a confirmed join returns the existing registration.
        """
        self.state = JoinState.VALIDATING
        if entrant_id is None:
            entrant_id = acting_user_id

        try:
            # Ownership is checked on every call, replays included
            self._authorize(acting_user_id, entrant_kind, entrant_id)
        except Exception:
            self.db.rollback()
            self.state = JoinState.REJECTED
            raise

        existing = self.find_registration(tournament_id, entrant_kind, entrant_id)
        if existing:
            return self._replay(existing)

        try:
            tournament = self._validate(tournament_id, acting_user_id, entrant_kind, entrant_id)
            reservation = self.tournaments.reserve_slot(tournament_id)
        except Exception:
            self.db.rollback()
            self.state = JoinState.REJECTED
            raise
        self.state = JoinState.SLOT_RESERVED

        try:
            return self._pay_and_confirm(tournament, reservation, acting_user_id, entrant_kind, entrant_id)
        except (DuplicateIdempotencyKey, _ConcurrentJoin):
            self._compensate(reservation)
            return self._replay_after_race(tournament_id, entrant_kind, entrant_id)
        except IntegrityError:
            # The failed flush already poisoned the transaction, the rollback drops the slot with it
            self._compensate(reservation, release=False)
            return self._replay_after_race(tournament_id, entrant_kind, entrant_id)
        except BaseException:
            # Includes cancellation between reservation and debit
            self._compensate(reservation)
            raise

    def _authorize(self, acting_user_id, entrant_kind, entrant_id):
        """The caller may act for this entrant: themself, or a team they captain"""
        if entrant_kind == EntrantKind.USER:
            if entrant_id != acting_user_id:
                raise ForbiddenAction("Players can only register themselves")
            return

        team = self.teams.get_team(entrant_id, include_archived=False)
        membership = self.teams.get_membership(team.id, acting_user_id)
        if not membership or membership.role != TeamRole.CAPTAIN:
            raise NotTeamCaptain("register the team")

    def _validate(self, tournament_id, acting_user_id, entrant_kind, entrant_id) -> Tournament:
        tournament = self.tournaments.get(tournament_id)
        if tournament.status != TournamentStatus.UPCOMING:
            raise TournamentNotJoinable(f"Tournament is {tournament.status.value}, registration is closed")

        payer = self.db.query(User).filter(User.id == acting_user_id).first()
        if not payer:
            raise UserNotFound()
        if not payer.is_active:
            raise ForbiddenAction("Inactive users cannot join tournaments")

        if tournament.mode == TournamentMode.SOLO:
            if entrant_kind != EntrantKind.USER:
                raise InvalidEntrantKind("Solo tournaments accept individual players only")
            return tournament

        if entrant_kind != EntrantKind.TEAM:
            raise InvalidEntrantKind(f"{tournament.mode.value.capitalize()} tournaments accept teams only")

        # Held until commit or rollback, so the roster cannot shrink under the registration
        if not lock_team_roster(self.db, entrant_id):
            raise TeamNotFound()
        self._authorize(acting_user_id, entrant_kind, entrant_id)

        required = MIN_ROSTER[tournament.mode]
        roster = self.teams.roster_size(entrant_id)
        if roster < required:
            raise InvalidEntrantKind(
                f"{tournament.mode.value.capitalize()} needs at least {required} team members, team has {roster}"
            )
        return tournament

    def _pay_and_confirm(self, tournament, reservation, payer_id, entrant_kind, entrant_id) -> JoinOutcome:
        # Another attempt for the same entrant may have committed while we waited for the slot
        if self.find_registration(tournament.id, entrant_kind, entrant_id):
            raise _ConcurrentJoin()

        entry = self.wallet.debit(
            payer_id,
            tournament.entry_fee,
            LedgerEntryKind.TOURNAMENT_ENTRY,
            entry_key(tournament.id, entrant_kind, entrant_id),
            description=f"Tournament Entry - {tournament.title}",
            commit=False,
        )
        self.state = JoinState.FEE_DEBITED

        registration = Registration(
            tournament_id=tournament.id,
            entrant_kind=entrant_kind,
            entrant_id=entrant_id,
            payer_id=payer_id,
            ledger_entry_id=entry.id,
        )
        self.tournaments.confirm(reservation, registration)
        self.db.commit()
        self.db.refresh(registration)

        self.state = JoinState.CONFIRMED
        logger.info(
            f"Registration confirmed: tournament={tournament.id} {entrant_kind.value}={entrant_id} "
            f"payer={payer_id} fee={tournament.entry_fee} entry={entry.id}"
        )
        return JoinOutcome(registration=registration, state=JoinState.CONFIRMED)

    def _compensate(self, reservation: SlotReservation, release: bool = True):
        """Release the held slot, then drop the transaction"""
        try:
            if release:
                self.tournaments.release(reservation)
        except Exception:
            # The rollback below discards the increment as well
            logger.exception(f"Explicit release failed for slot {reservation.token}, rolling back")
        finally:
            self.db.rollback()
        self.state = JoinState.COMPENSATED

    def _replay(self, registration: Registration) -> JoinOutcome:
        logger.info(f"Join replay: registration {registration.id} already confirmed")
        self.state = JoinState.CONFIRMED
        return JoinOutcome(registration=registration, state=JoinState.CONFIRMED, replayed=True)

    def _replay_after_race(self, tournament_id, entrant_kind, entrant_id) -> JoinOutcome:
        existing = self.find_registration(tournament_id, entrant_kind, entrant_id)
        if existing is None:
            # A paid entry without its registration cannot be produced by one transaction
            logger.error(
                f"Entry debit exists without registration: tournament={tournament_id} "
                f"{entrant_kind.value}={entrant_id}"
            )
            raise StorageUnavailable()
        return self._replay(existing)

    def award_prize(self, tournament_id: int, user_id: int, amount) -> LedgerEntry:
        """
        Credit a prize to a player of an ended tournament. The player must have
        entered solo or through a registered team. One prize per player.
        """
        tournament = self.tournaments.get(tournament_id)
        if tournament.status != TournamentStatus.ENDED:
            raise TournamentNotEnded()
        if not self._is_entrant(tournament_id, user_id):
            raise NotRegistered()

        return self.wallet.credit(
            user_id,
            amount,
            LedgerEntryKind.TOURNAMENT_WIN,
            f"prize:{tournament_id}:{user_id}",
            description=f"Tournament Win - {tournament.title}",
        )

    def _is_entrant(self, tournament_id: int, user_id: int) -> bool:
        team_ids = select(TeamMember.team_id).where(TeamMember.user_id == user_id)
        return self.db.query(Registration.id).filter(
            Registration.tournament_id == tournament_id,
            or_(
                and_(Registration.entrant_kind == EntrantKind.USER, Registration.entrant_id == user_id),
                and_(Registration.entrant_kind == EntrantKind.TEAM, Registration.entrant_id.in_(team_ids)),
            )
        ).first() is not None
