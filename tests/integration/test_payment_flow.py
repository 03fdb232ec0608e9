def _initiate(client, event_id, headers, quantity=1, phone="+266 5012 3456"):
    return client.post(
        "/api/payments/initiate",
        json={"event_id": event_id, "ticket_quantity": quantity, "phone_number": phone},
        headers=headers,
    )


def _available(client, event_id):
    return client.get(f"/api/events/{event_id}").json()["data"]["event"]["available_tickets"]


# ---------------------
# INITIATION
# ---------------------

def test_initiate_sends_stk_push(client, mpesa, attendee, create_event):
    _, headers = attendee
    event = create_event(ticket_price=150)

    response = _initiate(client, event["id"], headers, quantity=2)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Payment initiated successfully"
    payment = body["data"]["payment"]
    assert payment["amount"] == 300.0
    assert payment["status"] == "initiated"
    assert payment["phone_number"] == "25450123456"
    assert body["data"]["mpesa_response"] == {
        "checkoutRequestID": payment["mpesa_transaction_id"],
        "customerMessage": "Success. Request accepted for processing",
    }

    call = mpesa.calls[0]
    assert call["phone_number"] == "25450123456"
    assert call["account_reference"] == f"EVENT-{event['id'][:8]}"
    assert call["transaction_desc"] == "Payment for Maseru Jazz Night"


def test_initiate_does_not_reserve_tickets(client, attendee, create_event):
    _, headers = attendee
    event = create_event()

    _initiate(client, event["id"], headers, quantity=3)

    assert _available(client, event["id"]) == 10


def test_retry_reuses_pending_registration(client, attendee, create_event):
    _, headers = attendee
    event = create_event()

    first = _initiate(client, event["id"], headers, quantity=1).json()["data"]["payment"]
    second = _initiate(client, event["id"], headers, quantity=2).json()["data"]["payment"]

    assert first["registration_id"] == second["registration_id"]
    assert first["mpesa_transaction_id"] != second["mpesa_transaction_id"]

    status = client.get(f"/api/payments/status/{second['registration_id']}", headers=headers)
    registration = status.json()["data"]["registration"]
    assert registration["ticket_quantity"] == 2
    assert registration["total_amount"] == 200.0
    assert len(registration["payments"]) == 2


def test_initiate_rejects_more_than_available(client, mpesa, attendee, create_event):
    _, headers = attendee
    event = create_event(max_attendees=5)

    response = _initiate(client, event["id"], headers, quantity=6)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Only 5 tickets available"}
    assert mpesa.calls == []


def test_initiate_unknown_event(client, attendee):
    _, headers = attendee

    response = _initiate(client, "missing", headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Event not found"


def test_initiate_requires_token(client, create_event):
    event = create_event()

    response = client.post(
        "/api/payments/initiate",
        json={"event_id": event["id"], "ticket_quantity": 1, "phone_number": "50123456"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "No token provided"


def test_initiate_validates_quantity(client, attendee, create_event):
    _, headers = attendee
    event = create_event()

    response = _initiate(client, event["id"], headers, quantity=0)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"


def test_vendor_failure_keeps_pending_registration(client, mpesa, attendee, create_event):
    _, headers = attendee
    event = create_event()
    mpesa.fail_with = {"errorCode": "500.001.1001", "errorMessage": "Unable to lock subscriber"}

    response = _initiate(client, event["id"], headers)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Failed to initiate M-Pesa payment",
        "error": {"errorCode": "500.001.1001", "errorMessage": "Unable to lock subscriber"},
    }

    history = client.get("/api/payments/history", headers=headers).json()["data"]["registrations"]
    assert len(history) == 1
    assert history[0]["payment_status"] == "pending"
    assert history[0]["payments"] == []

    mpesa.fail_with = None
    retry = _initiate(client, event["id"], headers).json()["data"]["payment"]
    assert retry["registration_id"] == history[0]["id"]


# ---------------------
# CALLBACK
# ---------------------

def test_success_callback_marks_paid_and_takes_tickets(client, attendee, create_event, send_callback):
    _, headers = attendee
    event = create_event()
    payment = _initiate(client, event["id"], headers, quantity=3).json()["data"]["payment"]

    ack = send_callback(payment["mpesa_transaction_id"], receipt="QKT1ABC2DE", amount=300)

    assert ack.status_code == 200
    assert ack.json() == {"ResultCode": 0, "ResultDesc": "Success"}
    registration = client.get(
        f"/api/payments/status/{payment['registration_id']}", headers=headers
    ).json()["data"]["registration"]
    assert registration["payment_status"] == "paid"
    assert registration["mpesa_receipt"] == "QKT1ABC2DE"
    assert registration["payments"][0]["status"] == "completed"
    assert registration["payments"][0]["mpesa_receipt"] == "QKT1ABC2DE"
    assert _available(client, event["id"]) == 7


def test_repeated_callback_takes_tickets_once(client, attendee, create_event, send_callback):
    _, headers = attendee
    event = create_event()
    payment = _initiate(client, event["id"], headers, quantity=2).json()["data"]["payment"]

    send_callback(payment["mpesa_transaction_id"])
    again = send_callback(payment["mpesa_transaction_id"])

    assert again.json() == {"ResultCode": 0, "ResultDesc": "Success"}
    assert _available(client, event["id"]) == 8


def test_failed_callback_leaves_tickets(client, attendee, create_event, send_callback):
    _, headers = attendee
    event = create_event()
    payment = _initiate(client, event["id"], headers, quantity=2).json()["data"]["payment"]

    ack = send_callback(payment["mpesa_transaction_id"], result_code=1032)

    assert ack.json() == {"ResultCode": 0, "ResultDesc": "Success"}
    registration = client.get(
        f"/api/payments/status/{payment['registration_id']}", headers=headers
    ).json()["data"]["registration"]
    assert registration["payment_status"] == "failed"
    assert registration["payments"][0]["status"] == "failed"
    assert _available(client, event["id"]) == 10


def test_late_success_after_failure_settles_registration(client, attendee, create_event, send_callback):
    _, headers = attendee
    event = create_event()
    first = _initiate(client, event["id"], headers).json()["data"]["payment"]
    second = _initiate(client, event["id"], headers).json()["data"]["payment"]

    send_callback(first["mpesa_transaction_id"], result_code=1032)
    send_callback(second["mpesa_transaction_id"])

    registration = client.get(
        f"/api/payments/status/{second['registration_id']}", headers=headers
    ).json()["data"]["registration"]
    assert registration["payment_status"] == "paid"
    assert _available(client, event["id"]) == 9


def test_oversold_success_still_records_payment(
    client, attendee, other_attendee, create_event, send_callback
):
    event = create_event(max_attendees=2)
    first = _initiate(client, event["id"], attendee[1], quantity=2).json()["data"]["payment"]
    second = _initiate(client, event["id"], other_attendee[1], quantity=2).json()["data"]["payment"]

    send_callback(first["mpesa_transaction_id"])
    send_callback(second["mpesa_transaction_id"], receipt="QKT9ZZZ")

    assert _available(client, event["id"]) == 0
    registration = client.get(
        f"/api/payments/status/{second['registration_id']}", headers=other_attendee[1]
    ).json()["data"]["registration"]
    assert registration["payment_status"] == "paid"
    assert registration["payments"][0]["status"] == "completed"


def test_unknown_checkout_id_is_acknowledged(client, send_callback):
    ack = send_callback("ws_CO_unknown")

    assert ack.json() == {"ResultCode": 0, "ResultDesc": "Success"}


def test_malformed_callback_is_refused(client):
    ack = client.post("/api/payments/callback", json={"Body": {}})

    assert ack.status_code == 200
    assert ack.json() == {"ResultCode": 1, "ResultDesc": "Failed"}


def test_non_object_callback_is_refused(client):
    for body in ([], "Body", 42):
        ack = client.post("/api/payments/callback", json=body)

        assert ack.status_code == 200
        assert ack.json() == {"ResultCode": 1, "ResultDesc": "Failed"}


def test_non_json_callback_is_refused(client):
    for content in (b"not json", b""):
        ack = client.post(
            "/api/payments/callback",
            content=content,
            headers={"Content-Type": "application/json"},
        )

        assert ack.status_code == 200
        assert ack.json() == {"ResultCode": 1, "ResultDesc": "Failed"}


def test_stale_charge_settles_repriced_registration(
    client, attendee, create_event, send_callback, caplog
):
    _, headers = attendee
    event = create_event()
    first = _initiate(client, event["id"], headers, quantity=1).json()["data"]["payment"]
    _initiate(client, event["id"], headers, quantity=2)

    with caplog.at_level("WARNING", logger="lesotho_events.application.payment_service"):
        send_callback(first["mpesa_transaction_id"], amount=100)

    assert "Settled amount differs from the order" in caplog.text
    registration = client.get(
        f"/api/payments/status/{first['registration_id']}", headers=headers
    ).json()["data"]["registration"]
    assert registration["payment_status"] == "paid"
    assert registration["ticket_quantity"] == 2
    assert _available(client, event["id"]) == 8


def test_matching_amount_logs_no_warning(client, attendee, create_event, send_callback, caplog):
    _, headers = attendee
    event = create_event()
    payment = _initiate(client, event["id"], headers, quantity=2).json()["data"]["payment"]

    with caplog.at_level("WARNING", logger="lesotho_events.application.payment_service"):
        send_callback(payment["mpesa_transaction_id"], amount=200)

    assert "Settled amount differs" not in caplog.text


# ---------------------
# STATUS / HISTORY
# ---------------------

def test_status_hidden_from_other_users(client, attendee, other_attendee, create_event):
    event = create_event()
    payment = _initiate(client, event["id"], attendee[1]).json()["data"]["payment"]

    response = client.get(
        f"/api/payments/status/{payment['registration_id']}", headers=other_attendee[1]
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Registration not found"


def test_history_lists_own_registrations(client, attendee, other_attendee, create_event):
    first = create_event(title="Morija Festival")
    second = create_event(title="Roma Trail Run")
    _initiate(client, first["id"], attendee[1])
    _initiate(client, second["id"], attendee[1])
    _initiate(client, first["id"], other_attendee[1])

    history = client.get("/api/payments/history", headers=attendee[1]).json()["data"]["registrations"]

    assert {item["event"]["title"] for item in history} == {"Morija Festival", "Roma Trail Run"}
