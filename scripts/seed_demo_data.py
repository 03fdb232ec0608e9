import os
from datetime import date, time, timedelta
from decimal import Decimal

from sqlalchemy import select

from lesotho_events.domain.state_machine import EventStatus, UserRole
from lesotho_events.infrastructure.db.models import Base, Event, User
from lesotho_events.infrastructure.db.session import engine, get_db_session
from lesotho_events.infrastructure.security import hash_password


def _upsert_user(db, email: str, full_name: str, role: UserRole, password: str) -> User:
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        user.role = role
        return user

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone_number="+26650000000",
        role=role,
    )
    db.add(user)
    db.flush()
    return user


def seed_users(db) -> User:
    password = os.getenv("SEED_PASSWORD", "password123")
    _upsert_user(db, "admin@lesothoevents.ls", "Site Admin", UserRole.ADMIN, password)
    return _upsert_user(
        db, "organizer@lesothoevents.ls", "Maseru Promotions", UserRole.ORGANIZER, password
    )


def seed_events(db, organizer: User) -> None:
    today = date.today()
    event_defs = [
        {
            "title": "Morija Arts & Cultural Festival",
            "description": "Music, dance and crafts from across Lesotho.",
            "location": "Morija",
            "venue": "Morija Museum Grounds",
            "event_date": today + timedelta(days=21),
            "event_time": time(10, 0),
            "category": "festival",
            "ticket_price": Decimal("150.00"),
            "max_attendees": 800,
        },
        {
            "title": "Maseru Jazz Night",
            "description": "An evening of live jazz.",
            "location": "Maseru",
            "venue": "Manthabiseng Convention Centre",
            "event_date": today + timedelta(days=10),
            "event_time": time(19, 30),
            "category": "music",
            "ticket_price": Decimal("250.00"),
            "max_attendees": 300,
        },
    ]

    for item in event_defs:
        existing = db.execute(
            select(Event).where(Event.title == item["title"])
        ).scalar_one_or_none()
        if existing:
            sold = existing.max_attendees - existing.available_tickets
            for field, value in item.items():
                setattr(existing, field, value)
            existing.available_tickets = max(item["max_attendees"] - sold, 0)
            existing.status = EventStatus.PUBLISHED
            continue

        db.add(
            Event(
                organizer_id=organizer.id,
                available_tickets=item["max_attendees"],
                status=EventStatus.PUBLISHED,
                **item,
            )
        )


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with get_db_session() as db:
        organizer = seed_users(db)
        seed_events(db, organizer)
    print("Seed complete: admin, organizer, Morija festival and Maseru jazz night added.")


if __name__ == "__main__":
    main()
