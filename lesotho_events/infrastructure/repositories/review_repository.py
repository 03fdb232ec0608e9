# lesotho_events/infrastructure/repositories/review_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select

from lesotho_events.infrastructure.db.models import Review


class ReviewRepository:

    def __init__(self, db: Session):
        self.db = db

    def list_for_event(self, event_id: str) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.event_id == event_id)
            .order_by(Review.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_by_user_and_event(self, user_id: str, event_id: str) -> Review | None:
        stmt = (
            select(Review)
            .where(Review.user_id == user_id)
            .where(Review.event_id == event_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_user(self, review_id: str, user_id: str) -> Review | None:
        stmt = (
            select(Review)
            .where(Review.id == review_id)
            .where(Review.user_id == user_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create(
        self,
        user_id: str,
        event_id: str,
        rating: int,
        comment: str | None,
    ) -> Review:
        review = Review(
            user_id=user_id,
            event_id=event_id,
            rating=rating,
            comment=comment,
        )
        self.db.add(review)
        self.db.flush()
        return review

    def delete(self, review: Review) -> None:
        self.db.delete(review)
        self.db.flush()
