def test_register_returns_token(client):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "Nthabiseng@Example.com",
            "password": "secret123",
            "full_name": "Nthabiseng Lebona",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["data"]["user"]["email"] == "nthabiseng@example.com"
    assert body["data"]["user"]["role"] == "user"
    assert "password_hash" not in body["data"]["user"]
    assert body["data"]["token"]


def test_duplicate_email_is_rejected(client, attendee):
    response = client.post(
        "/api/auth/register",
        json={"email": "ATTENDEE@example.com", "password": "secret123", "full_name": "Copy"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this email"


def test_admin_role_cannot_be_self_assigned(client):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "sneaky@example.com",
            "password": "secret123",
            "full_name": "Sneaky",
            "role": "admin",
        },
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"


def test_short_password_is_rejected(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "short@example.com", "password": "123", "full_name": "Short"},
    )

    assert response.status_code == 400
    assert response.json()["errors"]


def test_login_and_me(client, attendee):
    login = client.post(
        "/api/auth/login",
        json={"email": "attendee@example.com", "password": "secret123"},
    )

    assert login.status_code == 200
    assert login.json()["message"] == "Login successful"
    token = login.json()["data"]["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["user"]["id"] == attendee[0]["id"]


def test_login_with_wrong_password(client, attendee):
    response = client.post(
        "/api/auth/login",
        json={"email": "attendee@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_invalid_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_health(client):
    body = client.get("/api/health").json()

    assert body["status"] == "OK"
    assert body["timestamp"]


def test_register_rejects_password_longer_than_bcrypt_accepts(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "long@example.com", "password": "p" * 100, "full_name": "Long"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"


def test_register_rejects_multibyte_password_over_72_bytes(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "wide@example.com", "password": "é" * 40, "full_name": "Wide"},
    )

    assert response.status_code == 400


def test_login_with_overlong_password_is_invalid_credentials(client, attendee):
    response = client.post(
        "/api/auth/login",
        json={"email": "attendee@example.com", "password": "p" * 100},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_register_rejects_malformed_email(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "secret123", "full_name": "Nobody"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"
