# lesotho_events/infrastructure/repositories/registration_repository.py

from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import or_, select

from lesotho_events.domain.state_machine import RegistrationStatus
from lesotho_events.infrastructure.db.models import Event, Registration


class RegistrationRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_for_user(
        self,
        registration_id: str,
        user_id: str,
    ) -> Registration | None:
        stmt = (
            select(Registration)
            .where(Registration.id == registration_id)
            .where(Registration.user_id == user_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_pending(self, user_id: str, event_id: str) -> Registration | None:
        stmt = (
            select(Registration)
            .where(Registration.user_id == user_id)
            .where(Registration.event_id == event_id)
            .where(Registration.payment_status == RegistrationStatus.PENDING)
            .order_by(Registration.created_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def has_paid_registration(self, user_id: str, event_id: str) -> bool:
        stmt = (
            select(Registration.id)
            .where(Registration.user_id == user_id)
            .where(Registration.event_id == event_id)
            .where(Registration.payment_status == RegistrationStatus.PAID)
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    def find_by_ticket_code(self, code: str) -> Registration | None:
        # Scanners may encode either the registration id or the QR token.
        stmt = select(Registration).where(
            or_(Registration.id == code, Registration.qr_code_data == code)
        )
        return self.db.execute(stmt).scalars().first()

    def find_by_qr_code_data(self, qr_code_data: str) -> Registration | None:
        stmt = select(Registration).where(Registration.qr_code_data == qr_code_data)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_user(self, user_id: str) -> list[Registration]:
        stmt = (
            select(Registration)
            .where(Registration.user_id == user_id)
            .order_by(Registration.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_for_organizer(self, organizer_id: str | None) -> list[Registration]:
        """All registrations for an organizer's events; every event when None."""
        stmt = select(Registration).join(Event, Registration.event_id == Event.id)
        if organizer_id is not None:
            stmt = stmt.where(Event.organizer_id == organizer_id)
        stmt = stmt.order_by(Registration.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def create_pending(
        self,
        user_id: str,
        event_id: str,
        ticket_quantity: int,
        total_amount: Decimal,
        phone_number: str,
    ) -> Registration:
        registration = Registration(
            user_id=user_id,
            event_id=event_id,
            ticket_quantity=ticket_quantity,
            total_amount=total_amount,
            phone_number=phone_number,
            payment_status=RegistrationStatus.PENDING,
        )
        self.db.add(registration)
        self.db.flush()
        return registration

    def update_order(
        self,
        registration: Registration,
        ticket_quantity: int,
        total_amount: Decimal,
        phone_number: str,
    ) -> Registration:
        registration.ticket_quantity = ticket_quantity
        registration.total_amount = total_amount
        registration.phone_number = phone_number
        self.db.flush()
        return registration

    def update_status(
        self,
        registration: Registration,
        new_status: RegistrationStatus,
        mpesa_receipt: str | None = None,
    ) -> None:
        registration.payment_status = new_status
        if mpesa_receipt:
            registration.mpesa_receipt = mpesa_receipt
