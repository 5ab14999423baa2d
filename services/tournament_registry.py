import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from core.exceptions import (
    InvalidTransition, TournamentFull, TournamentNotFound, TournamentNotJoinable
)
from models.registration import Registration
from models.tournament import Tournament, TournamentStatus, NEXT_STATUS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotReservation:
    tournament_id: int
    token: str = field(default_factory=lambda: uuid.uuid4().hex)
    reserved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TournamentRegistry:
    """
    Capacity, status lifecycle and confirmed entrants.

    Slot reservation is one conditional UPDATE (status + capacity in the WHERE
    clause), so there is no window between checking and incrementing.
    Reservations live in the caller's transaction: confirm() or release()
    must follow before it ends.
    """

    def __init__(self, db: Session):
        self.db = db
        self._held: Dict[str, SlotReservation] = {}

    # Reads

    def get(self, tournament_id: int) -> Tournament:
        tournament = self.db.query(Tournament).filter(
            Tournament.id == tournament_id
        ).populate_existing().first()
        if not tournament:
            raise TournamentNotFound()
        return tournament

    def list_tournaments(self, status: Optional[List[TournamentStatus]] = None, skip: int = 0, limit: int = 100) -> List[Tournament]:
        query = self.db.query(Tournament)
        if status:
            query = query.filter(Tournament.status.in_(status))
        return query.order_by(Tournament.start_time).offset(skip).limit(limit).all()

    def registrations(self, tournament_id: int) -> List[Registration]:
        self.get(tournament_id)
        return self.db.query(Registration).filter(
            Registration.tournament_id == tournament_id
        ).order_by(Registration.registered_at, Registration.id).all()

    def registration_count(self, tournament_id: int) -> int:
        return self.db.query(Registration).filter(Registration.tournament_id == tournament_id).count()

    # Writes

    def open(self, data: dict) -> Tournament:
        """Create a tournament in `upcoming` with no participants"""
        tournament = Tournament(
            **data,
            status=TournamentStatus.UPCOMING,
            current_participants=0,
        )
        try:
            self.db.add(tournament)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(tournament)
        logger.info(f"Tournament opened: id={tournament.id} title={tournament.title!r} max={tournament.max_participants}")
        return tournament

    def reserve_slot(self, tournament_id: int) -> SlotReservation:
        result = self.db.execute(
            update(Tournament)
            .where(
                Tournament.id == tournament_id,
                Tournament.status == TournamentStatus.UPCOMING,
                Tournament.current_participants < Tournament.max_participants,
            )
            .values(current_participants=Tournament.current_participants + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            reservation = SlotReservation(tournament_id=tournament_id)
            self._held[reservation.token] = reservation
            return reservation

        tournament = self.get(tournament_id)
        if tournament.status != TournamentStatus.UPCOMING:
            raise TournamentNotJoinable(f"Tournament is {tournament.status.value}, registration is closed")
        raise TournamentFull()

    def release(self, reservation: SlotReservation) -> bool:
        """Give a held slot back. Releasing twice is a no-op."""
        if self._held.pop(reservation.token, None) is None:
            return False
        self.db.execute(
            update(Tournament)
            .where(
                Tournament.id == reservation.tournament_id,
                Tournament.current_participants > 0,
            )
            .values(current_participants=Tournament.current_participants - 1)
            .execution_options(synchronize_session=False)
        )
        logger.warning(f"Released slot {reservation.token} on tournament {reservation.tournament_id}")
        return True

    def confirm(self, reservation: SlotReservation, registration: Registration) -> Registration:
        """Turn a held slot into a registration row (flushed, caller commits)"""
        if reservation.token not in self._held:
            raise ValueError("Reservation is unknown or already finalized")
        if registration.tournament_id != reservation.tournament_id:
            raise ValueError("Registration does not belong to the reserved tournament")

        self.db.add(registration)
        self.db.flush()
        del self._held[reservation.token]
        return registration

    def transition(self, tournament_id: int, to_status: TournamentStatus) -> Tournament:
        """Move one step along upcoming -> live -> ended"""
        tournament = self.get(tournament_id)
        from_status = tournament.status
        if NEXT_STATUS.get(from_status) != to_status:
            raise InvalidTransition(from_status.value, to_status.value)

        values = {"status": to_status}
        if to_status == TournamentStatus.ENDED and tournament.end_time is None:
            values["end_time"] = datetime.now(timezone.utc)

        try:
            # Compare-and-set on the status we validated against
            result = self.db.execute(
                update(Tournament)
                .where(Tournament.id == tournament_id, Tournament.status == from_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = self.get(tournament_id).status
                raise InvalidTransition(current.value, to_status.value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Tournament {tournament_id}: {from_status.value} -> {to_status.value}")
        return self.get(tournament_id)

    def verify_counters(self, tournament_id: int) -> dict:
        tournament = self.get(tournament_id)
        counted = self.registration_count(tournament_id)
        return {
            "tournament_id": tournament_id,
            "current_participants": tournament.current_participants,
            "registrations": counted,
            "max_participants": tournament.max_participants,
            "consistent": (
                tournament.current_participants == counted
                and counted <= tournament.max_participants
            ),
        }
