import logging

from sqlalchemy.orm import Session

from lesotho_events.domain.exceptions import InvalidCredentialsError, UserAlreadyExistsError
from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import User
from lesotho_events.infrastructure.repositories.user_repository import UserRepository
from lesotho_events.infrastructure.security import (
    create_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, db: Session):
        self.db = db
        self.user_repository = UserRepository(db)

    def register(
        self,
        email: str,
        password: str,
        full_name: str,
        phone_number: str | None,
        role: UserRole = UserRole.USER,
    ) -> tuple[User, str]:
        if self.user_repository.get_by_email(email):
            raise UserAlreadyExistsError()

        user = self.user_repository.create(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            phone_number=phone_number,
            role=role,
        )
        logger.info("User registered. user_id=%s role=%s", user.id, user.role.value)
        return user, create_access_token(user.id, user.email)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = self.user_repository.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user, create_access_token(user.id, user.email)
