from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lesotho_events.api.dependencies import (
    get_current_user,
    get_db,
    require_admin,
    require_organizer,
)
from lesotho_events.api.responses import success_response
from lesotho_events.api.schemas.schemas import (
    OrganizerRegistrationOut,
    ProfileUpdateRequest,
    RegistrationDetail,
    UserOut,
)
from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import User
from lesotho_events.infrastructure.repositories.registration_repository import (
    RegistrationRepository,
)
from lesotho_events.infrastructure.repositories.user_repository import UserRepository

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return success_response(data={"user": UserOut.model_validate(current_user)})


@router.put("/profile")
def update_profile(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(current_user, field, value)
    db.flush()
    db.refresh(current_user)
    return success_response(
        message="Profile updated successfully",
        data={"user": UserOut.model_validate(current_user)},
    )


@router.get("/registrations")
def my_registrations(
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


@router.get("/events/registrations")
def event_registrations(
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    organizer_id = None if current_user.role == UserRole.ADMIN else current_user.id
    registrations = RegistrationRepository(db).list_for_organizer(organizer_id)
    return success_response(
        data={
            "registrations": [
                OrganizerRegistrationOut.model_validate(registration)
                for registration in registrations
            ]
        }
    )


@router.get("")
def list_users(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users = UserRepository(db).list_all()
    return success_response(
        data={"users": [UserOut.model_validate(user) for user in users]}
    )
