from typing import Any


class LesothoEventsError(Exception):
    """
    Base exception for all domain-level errors
    inside the Lesotho Events API.

    Carries the HTTP status the API layer answers with.
    """

    status_code: int = 400

    def __init__(self, message: str, error: Any = None):
        self.message = message
        self.error = error
        super().__init__(message)


class InvalidStateTransitionError(LesothoEventsError):
    """
    Raised when an illegal registration or payment state transition is attempted.
    """

    status_code = 409

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class EventNotFoundError(LesothoEventsError):
    status_code = 404

    def __init__(self, message: str = "Event not found"):
        super().__init__(message)


class RegistrationNotFoundError(LesothoEventsError):
    status_code = 404

    def __init__(self, message: str = "Registration not found"):
        super().__init__(message)


class ReviewNotFoundError(LesothoEventsError):
    status_code = 404

    def __init__(self, message: str = "Review not found"):
        super().__init__(message)


class InsufficientTicketsError(LesothoEventsError):
    """Raised when fewer tickets are available than requested."""

    def __init__(self, available: int):
        self.available = available
        super().__init__(f"Only {available} tickets available")


class InvalidCapacityError(LesothoEventsError):
    """Raised when an event's capacity would drop below tickets already sold."""


class ReviewNotAllowedError(LesothoEventsError):
    def __init__(self):
        super().__init__("You can only review events you have attended")


class UserAlreadyExistsError(LesothoEventsError):
    def __init__(self):
        super().__init__("User already exists with this email")


class InvalidCredentialsError(LesothoEventsError):
    def __init__(self):
        super().__init__("Invalid email or password")


class AuthenticationError(LesothoEventsError):
    status_code = 401


class PermissionDeniedError(LesothoEventsError):
    status_code = 403


class PaymentInitiationError(LesothoEventsError):
    """Raised when the mobile-money vendor refuses or fails an STK push."""

    def __init__(self, error: Any = None):
        super().__init__("Failed to initiate M-Pesa payment", error=error)


class MpesaAuthError(Exception):
    """Raised when the vendor OAuth endpoint does not hand out a token."""
