import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DB_CONNECT_MAX_RETRIES"] = "1"

import pytest
from fastapi.testclient import TestClient

from lesotho_events.api.dependencies import get_mpesa_client
from lesotho_events.domain.state_machine import UserRole
from lesotho_events.infrastructure.db.models import Base, User
from lesotho_events.infrastructure.db.session import SessionLocal, engine
from lesotho_events.infrastructure.mpesa_client import StkPushResult
from lesotho_events.infrastructure.security import create_access_token, hash_password
from lesotho_events.main import app


class FakeMpesaClient:
    """Records STK pushes instead of calling Daraja."""

    def __init__(self):
        self.calls = []
        self.fail_with = None

    def initiate_stk_push(self, phone_number, amount, account_reference, transaction_desc):
        self.calls.append(
            {
                "phone_number": phone_number,
                "amount": amount,
                "account_reference": account_reference,
                "transaction_desc": transaction_desc,
            }
        )
        if self.fail_with is not None:
            return StkPushResult(success=False, error=self.fail_with)
        return StkPushResult(
            success=True,
            checkout_request_id=f"ws_CO_{len(self.calls):04d}",
            customer_message="Success. Request accepted for processing",
            response_code="0",
        )


@pytest.fixture
def mpesa():
    return FakeMpesaClient()


@pytest.fixture
def client(mpesa):
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_mpesa_client] = lambda: mpesa
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _register(client, email, role="user", full_name="Test User"):
    response = client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": "secret123",
            "full_name": full_name,
            "phone_number": "+26650123456",
            "role": role,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def organizer(client):
    return _register(client, "organizer@example.com", role="organizer", full_name="Thabo Mokoena")


@pytest.fixture
def attendee(client):
    return _register(client, "attendee@example.com", full_name="Lerato Molapo")


@pytest.fixture
def other_attendee(client):
    return _register(client, "second@example.com", full_name="Palesa Nthane")


@pytest.fixture
def admin_headers(client):
    with SessionLocal() as db:
        admin = User(
            email="admin@example.com",
            password_hash=hash_password("secret123"),
            full_name="Site Admin",
            role=UserRole.ADMIN,
        )
        db.add(admin)
        db.commit()
        token = create_access_token(admin.id, admin.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def create_event(client, organizer):
    """Creates an event as the organizer; published unless told otherwise."""
    _, headers = organizer

    def _create(publish=True, **overrides):
        payload = {
            "title": "Maseru Jazz Night",
            "description": "Live jazz",
            "location": "Maseru",
            "venue": "Manthabiseng Convention Centre",
            "event_date": "2030-05-01",
            "event_time": "19:30:00",
            "category": "music",
            "ticket_price": 100,
            "max_attendees": 10,
        }
        payload.update(overrides)
        response = client.post("/api/events", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        event = response.json()["data"]["event"]
        if publish:
            response = client.put(
                f"/api/events/{event['id']}",
                json={"status": "published"},
                headers=headers,
            )
            assert response.status_code == 200, response.text
            event = response.json()["data"]["event"]
        return event

    return _create


@pytest.fixture
def send_callback(client):
    """Posts a Daraja-shaped STK callback to the webhook."""

    def _send(checkout_request_id, result_code=0, receipt="QKT1ABC2DE", amount=100):
        stk_callback = {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": checkout_request_id,
            "ResultCode": result_code,
            "ResultDesc": "The service request is processed successfully."
            if result_code == 0
            else "Request cancelled by user",
        }
        if result_code == 0:
            stk_callback["CallbackMetadata"] = {
                "Item": [
                    {"Name": "Amount", "Value": amount},
                    {"Name": "MpesaReceiptNumber", "Value": receipt},
                    {"Name": "TransactionDate", "Value": 20300501193000},
                    {"Name": "PhoneNumber", "Value": 25450123456},
                ]
            }
        return client.post("/api/payments/callback", json={"Body": {"stkCallback": stk_callback}})

    return _send


@pytest.fixture
def buy_tickets(client, mpesa, send_callback):
    """Initiates a purchase and settles it successfully. Returns the registration id."""

    def _buy(event_id, headers, quantity=1):
        response = client.post(
            "/api/payments/initiate",
            json={"event_id": event_id, "ticket_quantity": quantity, "phone_number": "50123456"},
            headers=headers,
        )
        assert response.status_code == 200, response.text
        payment = response.json()["data"]["payment"]
        ack = send_callback(payment["mpesa_transaction_id"], amount=int(payment["amount"]))
        assert ack.json() == {"ResultCode": 0, "ResultDesc": "Success"}
        return payment["registration_id"]

    return _buy
