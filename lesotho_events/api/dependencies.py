from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from lesotho_events.domain.exceptions import AuthenticationError, PermissionDeniedError
from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import User
from lesotho_events.infrastructure.db.session import SessionLocal
from lesotho_events.infrastructure.mpesa_client import MpesaClient
from lesotho_events.infrastructure.repositories.user_repository import UserRepository
from lesotho_events.infrastructure.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_mpesa_client() -> MpesaClient:
    return MpesaClient.from_config()


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")

    payload = decode_access_token(credentials.credentials)
    user = UserRepository(db).get_by_id(payload["sub"])
    if not user:
        raise AuthenticationError("User not found")
    return user


def require_roles(*roles: UserRole):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise PermissionDeniedError(
                "Access denied. Insufficient permissions."
            )
        return current_user

    return dependency


require_organizer = require_roles(UserRole.ORGANIZER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)
