from sqlalchemy.orm import Session

from lesotho_events.domain.exceptions import (
    EventNotFoundError,
    InvalidCapacityError,
    PermissionDeniedError,
)
from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import Event, User
from lesotho_events.infrastructure.repositories.event_repository import EventRepository


class EventService:
    """Organizer-side event management."""

    def __init__(self, db: Session):
        self.db = db
        self.event_repository = EventRepository(db)

    def create_event(self, organizer: User, fields: dict) -> Event:
        return self.event_repository.create(organizer_id=organizer.id, **fields)

    def update_event(self, user: User, event_id: str, changes: dict) -> Event:
        event = self.event_repository.get_by_id(event_id)
        if not event:
            raise EventNotFoundError()

        if user.role != UserRole.ADMIN and event.organizer_id != user.id:
            raise PermissionDeniedError(
                "Access denied. You can only update your own events."
            )

        new_max = changes.pop("max_attendees", None)
        if new_max is not None and new_max != event.max_attendees:
            self._resize(event, new_max)

        for field, value in changes.items():
            setattr(event, field, value)

        self.db.flush()
        return event

    @staticmethod
    def _resize(event: Event, new_max: int) -> None:
        # Sold tickets stay sold; the available counter moves with the cap.
        sold = event.max_attendees - event.available_tickets
        if new_max < sold:
            raise InvalidCapacityError(
                f"max_attendees cannot be lower than the {sold} tickets already sold"
            )
        event.available_tickets = new_max - sold
        event.max_attendees = new_max
