from tests.helpers.clock import WEDNESDAY

LESSON = {"date": WEDNESDAY.isoformat(), "time": "09:00", "duration_minutes": 45}


def test_create_returns_hold(client, wednesday_template):
    response = client.post(
        "/api/v1/reservations",
        json={**LESSON, "participant": {"name": "Alva", "email": "alva@example.com"}},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "HOLD"
    assert body["kind"] == "ONE_TO_ONE"
    assert body["time"] == "09:00"
    assert body["end_time"] == "09:45"
    assert body["participant_email"] == "alva@example.com"
    assert body["expires_at"] is not None


def test_overlapping_request_gets_409(client, wednesday_template):
    client.post("/api/v1/reservations", json=LESSON)

    response = client.post(
        "/api/v1/reservations",
        json={"date": WEDNESDAY.isoformat(), "time": "09:30", "duration_minutes": 45},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "RESERVATION_CONFLICT"
    assert body["details"]["reason"] == "RESERVED"
    assert body["details"]["start_time"] == "09:00"


def test_missing_time_is_validation_error(client):
    response = client.post("/api/v1/reservations", json={"date": WEDNESDAY.isoformat()})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_unknown_fields_rejected(client):
    response = client.post("/api/v1/reservations", json={**LESSON, "price": 100})

    assert response.status_code == 422


def test_confirmed_initial_status_rejected(client, wednesday_template):
    response = client.post(
        "/api/v1/reservations", json={**LESSON, "initial_status": "CONFIRMED"}
    )

    assert response.status_code == 422


def test_confirm_and_get(client, wednesday_template):
    created = client.post("/api/v1/reservations", json=LESSON).json()

    confirmed = client.post(f"/api/v1/reservations/{created['id']}/confirm")
    fetched = client.get(f"/api/v1/reservations/{created['id']}")

    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "CONFIRMED"
    assert fetched.json()["status"] == "CONFIRMED"
    assert fetched.json()["expires_at"] is None


def test_confirm_expired_hold(client, clock, wednesday_template):
    created = client.post("/api/v1/reservations", json=LESSON).json()
    clock.advance(minutes=11)

    response = client.post(f"/api/v1/reservations/{created['id']}/confirm")

    assert response.status_code == 409
    assert response.json()["code"] == "HOLD_EXPIRED"


def test_cancel_with_reason(client, wednesday_template):
    created = client.post("/api/v1/reservations", json=LESSON).json()

    response = client.post(
        f"/api/v1/reservations/{created['id']}/cancel", json={"reason": "sick"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert response.json()["cancellation_reason"] == "sick"


def test_unknown_reservation(client):
    response = client.get("/api/v1/reservations/does-not-exist")

    assert response.status_code == 404
    assert response.json()["code"] == "RESERVATION_NOT_FOUND"


def test_group_session_seat(client, make_session):
    session = make_session(max_participants=1)

    first = client.post(
        "/api/v1/reservations", json={"kind": "GROUP_SESSION", "session_id": session.id}
    )
    second = client.post(
        "/api/v1/reservations", json={"kind": "GROUP_SESSION", "session_id": session.id}
    )

    assert first.status_code == 201
    assert first.json()["time"] == "10:00"
    assert second.status_code == 409
    assert second.json()["code"] == "CAPACITY_EXCEEDED"
