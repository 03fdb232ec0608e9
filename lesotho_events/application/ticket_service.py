import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from lesotho_events.domain.exceptions import (
    EventNotFoundError,
    PermissionDeniedError,
    RegistrationNotFoundError,
)
from lesotho_events.domain.state_machine import RegistrationStatus, UserRole
from lesotho_events.infrastructure.db.models import Registration, User
from lesotho_events.infrastructure.repositories.event_repository import EventRepository
from lesotho_events.infrastructure.repositories.registration_repository import (
    RegistrationRepository,
)

logger = logging.getLogger(__name__)


class TicketService:
    """
    Tickets are paid registrations. The QR code printed on a ticket
    encodes the registration's qr_code_data.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repository = EventRepository(db)
        self.registration_repository = RegistrationRepository(db)

    def get_ticket(self, user: User, registration_id: str) -> Registration:
        registration = self.registration_repository.get_for_user(registration_id, user.id)
        if not registration or registration.payment_status != RegistrationStatus.PAID:
            raise RegistrationNotFoundError("Ticket not found")
        return registration

    def get_ticket_by_qr(self, qr_code_data: str) -> Registration:
        registration = self.registration_repository.find_by_qr_code_data(qr_code_data)
        if not registration or registration.payment_status != RegistrationStatus.PAID:
            raise RegistrationNotFoundError("Ticket not found")
        return registration

    def verify(self, checker: User, event_id: str, qr_data: str) -> tuple[Registration, bool]:
        """
        Door check for a scanned QR code. Returns (registration, already_checked_in);
        the first successful scan stamps checked_in_at.
        """
        event = self.event_repository.get_by_id(event_id)
        if not event:
            raise EventNotFoundError()
        if checker.role != UserRole.ADMIN and event.organizer_id != checker.id:
            raise PermissionDeniedError("You can only verify tickets for your own events")

        registration = self.registration_repository.find_by_ticket_code(qr_data.strip())
        if (
            not registration
            or registration.event_id != event_id
            or registration.payment_status != RegistrationStatus.PAID
        ):
            raise RegistrationNotFoundError("Invalid ticket for this event")

        if registration.checked_in_at is not None:
            logger.info(
                "Ticket scanned again. registration_id=%s checked_in_at=%s",
                registration.id,
                registration.checked_in_at,
            )
            return registration, True

        registration.checked_in_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.info("Ticket checked in. registration_id=%s", registration.id)
        return registration, False
