from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session

from lesotho_events.domain.exceptions import ReviewNotAllowedError, ReviewNotFoundError
from lesotho_events.infrastructure.db.models import Review, User
from lesotho_events.infrastructure.repositories.registration_repository import (
    RegistrationRepository,
)
from lesotho_events.infrastructure.repositories.review_repository import ReviewRepository


def average_rating(ratings: list[int]) -> float:
    """Mean rating rounded half-up to one decimal; 0 when there are none."""
    if not ratings:
        return 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ReviewService:

    def __init__(self, db: Session):
        self.db = db
        self.review_repository = ReviewRepository(db)
        self.registration_repository = RegistrationRepository(db)

    def list_for_event(self, event_id: str) -> tuple[list[Review], float]:
        reviews = self.review_repository.list_for_event(event_id)
        return reviews, average_rating([review.rating for review in reviews])

    def submit(
        self,
        user: User,
        event_id: str,
        rating: int,
        comment: str | None,
    ) -> tuple[Review, bool]:
        """Creates or updates the user's review. Returns (review, created)."""
        if not self.registration_repository.has_paid_registration(user.id, event_id):
            raise ReviewNotAllowedError()

        review = self.review_repository.get_by_user_and_event(user.id, event_id)
        if review:
            review.rating = rating
            review.comment = comment
            self.db.flush()
            return review, False

        review = self.review_repository.create(
            user_id=user.id,
            event_id=event_id,
            rating=rating,
            comment=comment,
        )
        return review, True

    def delete(self, user: User, review_id: str) -> None:
        review = self.review_repository.get_for_user(review_id, user.id)
        if not review:
            raise ReviewNotFoundError()
        self.review_repository.delete(review)
