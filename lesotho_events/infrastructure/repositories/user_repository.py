# lesotho_events/infrastructure/repositories/user_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import func, select

from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import User


class UserRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return self.db.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[User]:
        stmt = select(User).order_by(User.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def create(
        self,
        email: str,
        password_hash: str,
        full_name: str,
        phone_number: str | None,
        role: UserRole,
    ) -> User:
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            full_name=full_name,
            phone_number=phone_number,
            role=role,
        )
        self.db.add(user)
        self.db.flush()
        return user
