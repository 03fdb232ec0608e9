from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lesotho_events.api.dependencies import get_current_user, get_db
from lesotho_events.api.responses import success_response
from lesotho_events.api.schemas.schemas import LoginRequest, RegisterRequest, UserOut
from lesotho_events.application.auth_service import AuthService
from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    user, token = AuthService(db).register(
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        phone_number=request.phone_number,
        role=UserRole(request.role),
    )
    return success_response(
        message="User registered successfully",
        data={"user": UserOut.model_validate(user), "token": token},
    )


@router.post("/login")
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user, token = AuthService(db).login(request.email, request.password)
    return success_response(
        message="Login successful",
        data={"user": UserOut.model_validate(user), "token": token},
    )


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return success_response(data={"user": UserOut.model_validate(current_user)})
