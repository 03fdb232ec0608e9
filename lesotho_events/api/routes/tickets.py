from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from lesotho_events.api.dependencies import get_current_user, get_db, require_organizer
from lesotho_events.api.responses import success_response
from lesotho_events.api.schemas.schemas import (
    AttendeeOut,
    EventSummary,
    OrganizerRegistrationOut,
    TicketOut,
    TicketVerifyRequest,
)
from lesotho_events.application.ticket_service import TicketService
from lesotho_events.infrastructure.db.models import Registration, User

router = APIRouter(prefix="/api/tickets", tags=["tickets"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "templates"))


def _ticket_out(registration: Registration) -> TicketOut:
    return TicketOut(
        registration_id=registration.id,
        ticket_number=registration.ticket_number,
        qr_code_data=registration.qr_code_data,
        ticket_quantity=registration.ticket_quantity,
        payment_status=registration.payment_status,
        checked_in_at=registration.checked_in_at,
        event=EventSummary.model_validate(registration.event),
        attendee=AttendeeOut.model_validate(registration.user),
    )


@router.post("/verify")
def verify_ticket(
    request: TicketVerifyRequest,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    registration, already_checked_in = TicketService(db).verify(
        checker=current_user,
        event_id=request.event_id,
        qr_data=request.qr_data,
    )
    return success_response(
        message="Ticket already checked in" if already_checked_in else "Ticket verified successfully",
        data={
            "registration": OrganizerRegistrationOut.model_validate(registration),
            "already_checked_in": already_checked_in,
        },
    )


@router.get("/page/{qr_code_data}", response_class=HTMLResponse)
def ticket_page(
    qr_code_data: str,
    request: Request,
    db: Session = Depends(get_db),
):
    registration = TicketService(db).get_ticket_by_qr(qr_code_data)
    return templates.TemplateResponse(
        request,
        "ticket.html",
        {"ticket": _ticket_out(registration)},
    )


@router.get("/{registration_id}")
def get_ticket(
    registration_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registration = TicketService(db).get_ticket(current_user, registration_id)
    return success_response(data={"ticket": _ticket_out(registration)})
