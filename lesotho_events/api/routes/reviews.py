from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lesotho_events.api.dependencies import get_current_user, get_db
from lesotho_events.api.responses import success_response
from lesotho_events.api.schemas.schemas import ReviewCreate, ReviewOut
from lesotho_events.application.review_service import ReviewService
from lesotho_events.infrastructure.db.models import User

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.get("/event/{event_id}")
def event_reviews(event_id: str, db: Session = Depends(get_db)):
    reviews, average = ReviewService(db).list_for_event(event_id)
    return success_response(
        data={
            "reviews": [ReviewOut.model_validate(review) for review in reviews],
            "averageRating": average,
            "totalReviews": len(reviews),
        }
    )


@router.post("")
def submit_review(
    request: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review, created = ReviewService(db).submit(
        user=current_user,
        event_id=request.event_id,
        rating=request.rating,
        comment=request.comment,
    )
    db.refresh(review)
    return success_response(
        message="Review submitted" if created else "Review updated",
        data={"review": ReviewOut.model_validate(review)},
    )


@router.delete("/{review_id}")
def delete_review(
    review_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ReviewService(db).delete(current_user, review_id)
    return success_response(message="Review deleted successfully")
