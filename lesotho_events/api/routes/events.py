from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lesotho_events.api.dependencies import get_db, require_organizer
from lesotho_events.api.responses import success_response
from lesotho_events.api.schemas.schemas import (
    EventCreate,
    EventOut,
    EventUpdate,
    Pagination,
)
from lesotho_events.application.event_service import EventService
from lesotho_events.domain.exceptions import EventNotFoundError
from lesotho_events.infrastructure.db.models import Event, User
from lesotho_events.infrastructure.repositories.event_repository import EventRepository

router = APIRouter(prefix="/api/events", tags=["events"])


def _event_out(
    event: Event,
    registration_count: int | None = None,
    with_contact: bool = False,
) -> EventOut:
    out = EventOut.model_validate(event)
    out.registration_count = registration_count
    if out.organizer is not None and not with_contact:
        out.organizer.phone_number = None
    return out


@router.get("")
def list_events(
    category: str | None = None,
    location: str | None = None,
    event_date: date | None = Query(default=None, alias="date"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    events, total = EventRepository(db).list_published(
        category=category,
        location=location,
        event_date=event_date,
        page=page,
        limit=limit,
    )
    return success_response(
        data={
            "events": [_event_out(event) for event in events],
            "pagination": Pagination(page=page, limit=limit, total=total),
        }
    )


# Declared before /{event_id} so "user" is not read as an id.
@router.get("/user/my-events")
def my_events(
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    repo = EventRepository(db)
    events = repo.list_by_organizer(current_user.id)
    counts = repo.registration_counts([event.id for event in events])
    return success_response(
        data={
            "events": [_event_out(event, counts.get(event.id, 0)) for event in events],
        }
    )


@router.get("/{event_id}")
def get_event(event_id: str, db: Session = Depends(get_db)):
    repo = EventRepository(db)
    event = repo.get_by_id(event_id)
    if not event:
        raise EventNotFoundError()
    count = repo.registration_counts([event.id]).get(event.id, 0)
    return success_response(
        data={"event": _event_out(event, count, with_contact=True)}
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_event(
    request: EventCreate,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    event = EventService(db).create_event(current_user, request.model_dump())
    return success_response(
        message="Event created successfully",
        data={"event": _event_out(event)},
    )


@router.put("/{event_id}")
def update_event(
    event_id: str,
    request: EventUpdate,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    event = EventService(db).update_event(current_user, event_id, changes)
    return success_response(
        message="Event updated successfully",
        data={"event": _event_out(event)},
    )
