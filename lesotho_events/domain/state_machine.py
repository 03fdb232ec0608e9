# lesotho_events/domain/state_machine.py

from enum import Enum
from typing import Dict, Set, Type

from lesotho_events.domain.exceptions import InvalidStateTransitionError


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentStatus(str, Enum):
    INITIATED = "initiated"
    COMPLETED = "completed"
    FAILED = "failed"


class UserRole(str, Enum):
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


class _StateMachine:
    """
    Shared lifecycle checks. Subclasses declare the status enum
    and the legal transitions.
    """

    _STATUS_TYPE: Type[Enum]
    _ALLOWED_TRANSITIONS: Dict[Enum, Set[Enum]]

    @classmethod
    def can_transition(cls, from_status, to_status) -> bool:
        """
        Returns True if transition is allowed.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status, to_status) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def is_terminal(cls, status) -> bool:
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @classmethod
    def get_allowed_transitions(cls, status) -> Set[Enum]:
        cls._ensure_valid_status(status)
        return cls._ALLOWED_TRANSITIONS.get(status, set())

    @classmethod
    def _ensure_valid_status(cls, status) -> None:
        if not isinstance(status, cls._STATUS_TYPE):
            raise TypeError(
                f"Expected {cls._STATUS_TYPE.__name__}, got {type(status)}"
            )


class RegistrationStateMachine(_StateMachine):
    """
    A registration waits in PENDING until the vendor callback settles it.
    A pending registration can carry several charge attempts, so a late
    success may still settle one that an earlier attempt marked FAILED.
    """

    _STATUS_TYPE = RegistrationStatus
    _ALLOWED_TRANSITIONS = {
        RegistrationStatus.PENDING: {
            RegistrationStatus.PAID,
            RegistrationStatus.FAILED,
        },
        RegistrationStatus.FAILED: {
            RegistrationStatus.PAID,
        },
        RegistrationStatus.PAID: set(),
    }


class PaymentStateMachine(_StateMachine):
    """
    One charge attempt. Only INITIATED payments accept a vendor result,
    which makes repeated webhook deliveries no-ops.
    """

    _STATUS_TYPE = PaymentStatus
    _ALLOWED_TRANSITIONS = {
        PaymentStatus.INITIATED: {
            PaymentStatus.COMPLETED,
            PaymentStatus.FAILED,
        },
        PaymentStatus.COMPLETED: set(),
        PaymentStatus.FAILED: set(),
    }
