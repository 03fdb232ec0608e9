# lesotho_events/infrastructure/db/models.py

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Date,
    Time,
    DateTime,
    Enum,
    Text,
    UniqueConstraint,
    CheckConstraint,
    ForeignKey,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import date, datetime, time
from decimal import Decimal
import secrets
from uuid import uuid4

from lesotho_events.infrastructure.db.session import Base
from lesotho_events.domain.state_machine import (
    EventStatus,
    PaymentStatus,
    RegistrationStatus,
    UserRole,
)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def generate_ticket_number() -> str:
    return f"LSE-{secrets.token_hex(4).upper()}"


def generate_qr_code_data() -> str:
    return f"{uuid4().hex}{secrets.token_hex(16)}"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=UserRole.USER,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
    )


class Event(Base):
    """
    Event listing. available_tickets is the sellable counter,
    max_attendees the cap it can never exceed.
    """

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(128), nullable=False)
    venue: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ticket_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )
    available_tickets: Mapped[int] = mapped_column(Integer, nullable=False)
    max_attendees: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus, name="event_status", values_callable=_enum_values),
        nullable=False,
        default=EventStatus.DRAFT,
    )
    organizer_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    organizer: Mapped[User] = relationship()

    __table_args__ = (
        CheckConstraint("ticket_price >= 0", name="ck_event_price_nonnegative"),
        CheckConstraint("max_attendees >= 0", name="ck_event_max_attendees_nonnegative"),
        CheckConstraint("available_tickets >= 0", name="ck_event_available_nonnegative"),
        CheckConstraint("available_tickets <= max_attendees", name="ck_event_available_lte_max"),
    )


class Registration(Base):
    __tablename__ = "registrations"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id"),
        nullable=False,
    )
    ticket_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_status: Mapped[RegistrationStatus] = mapped_column(
        Enum(RegistrationStatus, name="registration_status", values_callable=_enum_values),
        nullable=False,
        default=RegistrationStatus.PENDING,
    )
    mpesa_receipt: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ticket_number: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=generate_ticket_number,
    )
    qr_code_data: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default=generate_qr_code_data,
    )
    checked_in_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    user: Mapped[User] = relationship()
    event: Mapped[Event] = relationship()
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="registration",
        order_by="Payment.created_at",
    )

    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_registration_ticket_number"),
        UniqueConstraint("qr_code_data", name="uq_registration_qr_code_data"),
        CheckConstraint("ticket_quantity > 0", name="ck_ticket_quantity_positive"),
        CheckConstraint("total_amount >= 0", name="ck_total_amount_nonnegative"),
    )


class Payment(Base):
    """
    One row per STK push attempt, correlated to the vendor
    by its CheckoutRequestID.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    registration_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("registrations.id"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    mpesa_transaction_id: Mapped[str] = mapped_column(String(128), nullable=False)
    mpesa_receipt: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.INITIATED,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    registration: Mapped[Registration] = relationship(back_populates="payments")

    __table_args__ = (
        UniqueConstraint("mpesa_transaction_id", name="uq_payment_mpesa_transaction_id"),
    )


class Review(Base):
    __tablename__ = "event_reviews"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_review_event_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )
