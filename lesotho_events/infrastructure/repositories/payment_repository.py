# lesotho_events/infrastructure/repositories/payment_repository.py

from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import select

from lesotho_events.domain.state_machine import PaymentStatus
from lesotho_events.infrastructure.db.models import Payment


class PaymentRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_transaction_id(
        self,
        mpesa_transaction_id: str,
    ) -> Payment | None:
        stmt = select(Payment).where(
            Payment.mpesa_transaction_id == mpesa_transaction_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create_initiated(
        self,
        registration_id: str,
        amount: Decimal,
        phone_number: str,
        mpesa_transaction_id: str,
    ) -> Payment:
        payment = Payment(
            registration_id=registration_id,
            amount=amount,
            phone_number=phone_number,
            mpesa_transaction_id=mpesa_transaction_id,
            status=PaymentStatus.INITIATED,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def update_status(
        self,
        payment: Payment,
        new_status: PaymentStatus,
        mpesa_receipt: str | None = None,
    ) -> None:
        payment.status = new_status
        if mpesa_receipt:
            payment.mpesa_receipt = mpesa_receipt
