# lesotho_events/infrastructure/repositories/event_repository.py

from datetime import date

from sqlalchemy.orm import Session
from sqlalchemy import func, select, update

from lesotho_events.domain.state_machine import EventStatus
from lesotho_events.infrastructure.db.models import Event, Registration


class EventRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, event_id: str) -> Event | None:
        stmt = select(Event).where(Event.id == event_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_published(
        self,
        category: str | None = None,
        location: str | None = None,
        event_date: date | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Event], int]:
        stmt = select(Event).where(Event.status == EventStatus.PUBLISHED)

        if category:
            stmt = stmt.where(Event.category == category)
        if location:
            stmt = stmt.where(Event.location.ilike(f"%{location}%"))
        if event_date:
            stmt = stmt.where(Event.event_date == event_date)

        total = self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        stmt = (
            stmt.order_by(Event.event_date, Event.event_time)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all()), total

    def list_by_organizer(self, organizer_id: str) -> list[Event]:
        stmt = (
            select(Event)
            .where(Event.organizer_id == organizer_id)
            .order_by(Event.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def create(self, organizer_id: str, **fields) -> Event:
        max_attendees = fields["max_attendees"]
        event = Event(
            organizer_id=organizer_id,
            available_tickets=max_attendees,
            status=EventStatus.DRAFT,
            **fields,
        )
        self.db.add(event)
        self.db.flush()
        return event

    def registration_counts(self, event_ids: list[str]) -> dict[str, int]:
        if not event_ids:
            return {}
        stmt = (
            select(Registration.event_id, func.count(Registration.id))
            .where(Registration.event_id.in_(event_ids))
            .group_by(Registration.event_id)
        )
        return {event_id: count for event_id, count in self.db.execute(stmt).all()}

    def decrement_available_tickets(self, event_id: str, quantity: int) -> bool:
        """
        UPDATE ... WHERE available_tickets >= quantity
        Returns False when not enough tickets were left to take.
        """
        stmt = (
            update(Event)
            .where(Event.id == event_id)
            .where(Event.available_tickets >= quantity)
            .values(available_tickets=Event.available_tickets - quantity)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1
