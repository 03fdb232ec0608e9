import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from lesotho_events.api.schemas.schemas import StkCallback
from lesotho_events.domain.exceptions import (
    EventNotFoundError,
    InsufficientTicketsError,
    PaymentInitiationError,
)
from lesotho_events.domain.state_machine import (
    PaymentStateMachine,
    PaymentStatus,
    RegistrationStateMachine,
    RegistrationStatus,
)
from lesotho_events.infrastructure.db.models import Payment, Registration, User
from lesotho_events.infrastructure.mpesa_client import (
    MpesaClient,
    StkPushResult,
    format_phone_number,
    whole_units,
)
from lesotho_events.infrastructure.repositories.event_repository import EventRepository
from lesotho_events.infrastructure.repositories.payment_repository import PaymentRepository
from lesotho_events.infrastructure.repositories.registration_repository import (
    RegistrationRepository,
)

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Bridges a ticket purchase to an M-Pesa STK push and settles
    the vendor's asynchronous result.
    """

    def __init__(self, db: Session, mpesa_client: MpesaClient | None = None):
        self.db = db
        self.mpesa_client = mpesa_client
        self.event_repository = EventRepository(db)
        self.registration_repository = RegistrationRepository(db)
        self.payment_repository = PaymentRepository(db)

    def initiate(
        self,
        user: User,
        event_id: str,
        ticket_quantity: int,
        phone_number: str,
    ) -> tuple[Payment, StkPushResult]:
        event = self.event_repository.get_by_id(event_id)
        if not event:
            raise EventNotFoundError()

        # Checked, not reserved: tickets are only taken when the payment settles.
        if event.available_tickets < ticket_quantity:
            raise InsufficientTicketsError(event.available_tickets)

        total_amount = event.ticket_price * ticket_quantity

        registration = self.registration_repository.get_pending(user.id, event.id)
        if registration:
            self.registration_repository.update_order(
                registration,
                ticket_quantity=ticket_quantity,
                total_amount=total_amount,
                phone_number=phone_number,
            )
        else:
            registration = self.registration_repository.create_pending(
                user_id=user.id,
                event_id=event.id,
                ticket_quantity=ticket_quantity,
                total_amount=total_amount,
                phone_number=phone_number,
            )

        # The pending registration survives a vendor failure and is reused next time.
        self.db.commit()

        formatted_phone = format_phone_number(phone_number)
        result = self.mpesa_client.initiate_stk_push(
            phone_number=formatted_phone,
            amount=total_amount,
            account_reference=f"EVENT-{event.id[:8]}",
            transaction_desc=f"Payment for {event.title}",
        )
        if not result.success:
            logger.warning(
                "STK push failed. registration_id=%s event_id=%s",
                registration.id,
                event.id,
            )
            raise PaymentInitiationError(result.error)

        payment = self.payment_repository.create_initiated(
            registration_id=registration.id,
            amount=total_amount,
            phone_number=formatted_phone,
            mpesa_transaction_id=result.checkout_request_id,
        )
        logger.info(
            "STK push sent. registration_id=%s checkout_request_id=%s amount=%s",
            registration.id,
            result.checkout_request_id,
            total_amount,
        )
        return payment, result

    def handle_callback(self, callback: StkCallback) -> None:
        payment = self.payment_repository.get_by_transaction_id(
            callback.checkout_request_id
        )
        if not payment:
            logger.warning(
                "Callback for unknown payment. checkout_request_id=%s",
                callback.checkout_request_id,
            )
            return

        if PaymentStateMachine.is_terminal(payment.status):
            logger.info(
                "Ignoring repeated callback. payment_id=%s status=%s",
                payment.id,
                payment.status.value,
            )
            return

        registration = payment.registration

        if callback.result_code == 0:
            self._settle_success(payment, registration, callback)
        else:
            self._settle_failure(payment, registration, callback)

        self.db.flush()

    def _settle_success(
        self,
        payment: Payment,
        registration: Registration,
        callback: StkCallback,
    ) -> None:
        receipt = callback.metadata_value("MpesaReceiptNumber")
        if receipt is not None:
            receipt = str(receipt)

        self._check_amount(payment, registration, callback)

        self._transition_payment(payment, PaymentStatus.COMPLETED, receipt)

        if not RegistrationStateMachine.can_transition(
            registration.payment_status, RegistrationStatus.PAID
        ):
            logger.warning(
                "Registration already settled; payment recorded only. "
                "registration_id=%s payment_id=%s receipt=%s",
                registration.id,
                payment.id,
                receipt,
            )
            return

        self._transition_registration(registration, RegistrationStatus.PAID, receipt)

        taken = self.event_repository.decrement_available_tickets(
            registration.event_id,
            registration.ticket_quantity,
        )
        if not taken:
            logger.warning(
                "Event oversold; tickets not decremented. event_id=%s registration_id=%s quantity=%s",
                registration.event_id,
                registration.id,
                registration.ticket_quantity,
            )

        logger.info(
            "Payment completed. receipt=%s amount=%s phone=%s date=%s",
            receipt,
            callback.metadata_value("Amount"),
            callback.metadata_value("PhoneNumber"),
            callback.metadata_value("TransactionDate"),
        )

    @staticmethod
    def _check_amount(
        payment: Payment,
        registration: Registration,
        callback: StkCallback,
    ) -> None:
        # The registration may have been re-priced by a later initiate while this charge was pending.
        paid = callback.metadata_value("Amount")
        if paid is None:
            return
        try:
            paid_units = Decimal(str(paid))
        except InvalidOperation:
            paid_units = None
        if paid_units != whole_units(payment.amount) or payment.amount != registration.total_amount:
            logger.warning(
                "Settled amount differs from the order. payment_id=%s paid=%s charged=%s order_total=%s",
                payment.id,
                paid,
                payment.amount,
                registration.total_amount,
            )

    def _settle_failure(
        self,
        payment: Payment,
        registration: Registration,
        callback: StkCallback,
    ) -> None:
        logger.info(
            "Payment failed. payment_id=%s result_code=%s desc=%s",
            payment.id,
            callback.result_code,
            callback.result_desc,
        )
        self._transition_payment(payment, PaymentStatus.FAILED)

        if RegistrationStateMachine.can_transition(
            registration.payment_status, RegistrationStatus.FAILED
        ):
            self._transition_registration(registration, RegistrationStatus.FAILED)

    def _transition_payment(
        self,
        payment: Payment,
        to_status: PaymentStatus,
        mpesa_receipt: str | None = None,
    ) -> None:
        PaymentStateMachine.validate_transition(payment.status, to_status)
        self.payment_repository.update_status(payment, to_status, mpesa_receipt)

    def _transition_registration(
        self,
        registration: Registration,
        to_status: RegistrationStatus,
        mpesa_receipt: str | None = None,
    ) -> None:
        RegistrationStateMachine.validate_transition(registration.payment_status, to_status)
        self.registration_repository.update_status(registration, to_status, mpesa_receipt)
