from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from lesotho_events.domain.state_machine import (
    EventStatus,
    PaymentStatus,
    RegistrationStatus,
    UserRole,
)
from lesotho_events.infrastructure.security import BCRYPT_MAX_PASSWORD_BYTES


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------
# AUTH / USERS
# ---------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=BCRYPT_MAX_PASSWORD_BYTES)
    full_name: str = Field(min_length=1, max_length=128)
    phone_number: str | None = None
    role: Literal["user", "organizer"] = "user"

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=128)
    phone_number: str | None = None


class UserOut(ORMModel):
    id: str
    email: str
    full_name: str
    phone_number: str | None = None
    role: UserRole
    created_at: datetime | None = None


class AttendeeOut(ORMModel):
    full_name: str
    email: str
    phone_number: str | None = None


class OrganizerOut(ORMModel):
    full_name: str
    email: str
    phone_number: str | None = None


class ReviewerOut(ORMModel):
    full_name: str
    created_at: datetime | None = None


# ---------------------
# EVENTS
# ---------------------

class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    location: str = Field(min_length=1, max_length=128)
    venue: str | None = None
    event_date: date
    event_time: time | None = None
    category: str | None = None
    ticket_price: Decimal = Field(default=Decimal("0"), ge=0)
    max_attendees: int = Field(gt=0)
    image_url: str | None = None


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    location: str | None = Field(default=None, min_length=1, max_length=128)
    venue: str | None = None
    event_date: date | None = None
    event_time: time | None = None
    category: str | None = None
    ticket_price: Decimal | None = Field(default=None, ge=0)
    max_attendees: int | None = Field(default=None, gt=0)
    image_url: str | None = None
    status: EventStatus | None = None


class EventSummary(ORMModel):
    id: str
    title: str
    location: str
    venue: str | None = None
    event_date: date
    event_time: time | None = None
    image_url: str | None = None


class EventOut(ORMModel):
    id: str
    title: str
    description: str | None = None
    location: str
    venue: str | None = None
    event_date: date
    event_time: time | None = None
    category: str | None = None
    ticket_price: float
    available_tickets: int
    max_attendees: int
    image_url: str | None = None
    status: EventStatus
    organizer_id: str
    organizer: OrganizerOut | None = None
    registration_count: int | None = None
    created_at: datetime | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


# ---------------------
# REGISTRATIONS / PAYMENTS
# ---------------------

class PaymentInitiateRequest(BaseModel):
    event_id: str = Field(min_length=1)
    ticket_quantity: int = Field(gt=0)
    phone_number: str = Field(min_length=1)


class PaymentOut(ORMModel):
    id: str
    registration_id: str
    amount: float
    phone_number: str
    mpesa_transaction_id: str
    mpesa_receipt: str | None = None
    status: PaymentStatus
    created_at: datetime | None = None


class RegistrationOut(ORMModel):
    id: str
    user_id: str
    event_id: str
    ticket_quantity: int
    total_amount: float
    phone_number: str
    payment_status: RegistrationStatus
    mpesa_receipt: str | None = None
    ticket_number: str
    qr_code_data: str
    checked_in_at: datetime | None = None
    created_at: datetime | None = None


class RegistrationDetail(RegistrationOut):
    event: EventSummary
    payments: list[PaymentOut] = []


class OrganizerRegistrationOut(RegistrationOut):
    event: EventSummary
    user: AttendeeOut


class MpesaResponseOut(BaseModel):
    checkoutRequestID: str | None
    customerMessage: str | None


# Vendor webhook payload: {"Body": {"stkCallback": {...}}}

class MpesaCallbackItem(BaseModel):
    name: str = Field(alias="Name")
    value: Any = Field(default=None, alias="Value")


class MpesaCallbackMetadata(BaseModel):
    items: list[MpesaCallbackItem] = Field(default_factory=list, alias="Item")


class StkCallback(BaseModel):
    merchant_request_id: str | None = Field(default=None, alias="MerchantRequestID")
    checkout_request_id: str = Field(alias="CheckoutRequestID")
    result_code: int = Field(alias="ResultCode")
    result_desc: str | None = Field(default=None, alias="ResultDesc")
    callback_metadata: MpesaCallbackMetadata | None = Field(
        default=None,
        alias="CallbackMetadata",
    )

    def metadata_value(self, name: str) -> Any:
        if not self.callback_metadata:
            return None
        for item in self.callback_metadata.items:
            if item.name == name:
                return item.value
        return None


class MpesaCallbackBody(BaseModel):
    stk_callback: StkCallback = Field(alias="stkCallback")


class MpesaCallbackPayload(BaseModel):
    body: MpesaCallbackBody = Field(alias="Body")


# ---------------------
# REVIEWS
# ---------------------

class ReviewCreate(BaseModel):
    event_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    comment: str | None = None


class ReviewOut(ORMModel):
    id: str
    event_id: str
    user_id: str
    rating: int
    comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: ReviewerOut


# ---------------------
# TICKETS
# ---------------------

class TicketOut(BaseModel):
    registration_id: str
    ticket_number: str
    qr_code_data: str
    ticket_quantity: int
    payment_status: RegistrationStatus
    checked_in_at: datetime | None = None
    event: EventSummary
    attendee: AttendeeOut


class TicketVerifyRequest(BaseModel):
    event_id: str = Field(min_length=1)
    qr_data: str = Field(min_length=1)
