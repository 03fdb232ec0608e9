import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from lesotho_events.api.dependencies import get_current_user, get_db, get_mpesa_client
from lesotho_events.api.responses import success_response
from lesotho_events.api.schemas.schemas import (
    MpesaCallbackPayload,
    MpesaResponseOut,
    PaymentInitiateRequest,
    PaymentOut,
    RegistrationDetail,
)
from lesotho_events.application.payment_service import PaymentService
from lesotho_events.domain.exceptions import RegistrationNotFoundError
from lesotho_events.infrastructure.db.models import User
from lesotho_events.infrastructure.mpesa_client import MpesaClient
from lesotho_events.infrastructure.repositories.registration_repository import (
    RegistrationRepository,
)

router = APIRouter(prefix="/api/payments", tags=["payments"])
logger = logging.getLogger(__name__)

CALLBACK_ACK = {"ResultCode": 0, "ResultDesc": "Success"}
CALLBACK_NACK = {"ResultCode": 1, "ResultDesc": "Failed"}


@router.post("/initiate")
def initiate_payment(
    request: PaymentInitiateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    mpesa_client: MpesaClient = Depends(get_mpesa_client),
):
    payment, result = PaymentService(db, mpesa_client).initiate(
        user=current_user,
        event_id=request.event_id,
        ticket_quantity=request.ticket_quantity,
        phone_number=request.phone_number,
    )
    return success_response(
        message="Payment initiated successfully",
        data={
            "payment": PaymentOut.model_validate(payment),
            "mpesa_response": MpesaResponseOut(
                checkoutRequestID=result.checkout_request_id,
                customerMessage=result.customer_message,
            ),
        },
    )


def _settle_callback(payload: Any, db: Session) -> dict:
    try:
        callback = MpesaCallbackPayload.model_validate(payload).body.stk_callback
        PaymentService(db).handle_callback(callback)
    except ValidationError:
        logger.exception("Malformed M-Pesa callback payload")
        return CALLBACK_NACK
    except Exception:
        db.rollback()
        logger.exception("Callback processing error")
        return CALLBACK_NACK
    return CALLBACK_ACK


@router.post("/callback")
async def mpesa_callback(request: Request, db: Session = Depends(get_db)):
    # The vendor only understands the two-field acknowledgement, never an error envelope.
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("M-Pesa callback body is not JSON: %r", await request.body())
        return CALLBACK_NACK

    logger.info("M-Pesa callback received: %s", payload)
    return await run_in_threadpool(_settle_callback, payload, db)


@router.get("/status/{registration_id}")
def payment_status(
    registration_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registration = RegistrationRepository(db).get_for_user(registration_id, current_user.id)
    if not registration:
        raise RegistrationNotFoundError()
    return success_response(
        data={"registration": RegistrationDetail.model_validate(registration)}
    )


@router.get("/history")
def payment_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registrations = RegistrationRepository(db).list_for_user(current_user.id)
    return success_response(
        data={
            "registrations": [
                RegistrationDetail.model_validate(registration)
                for registration in registrations
            ]
        }
    )
