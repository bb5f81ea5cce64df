from tests.helpers.clock import THURSDAY, WEDNESDAY


def test_range_is_required(client):
    response = client.get("/api/v1/availability", params={"start_date": WEDNESDAY.isoformat()})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "MISSING_RANGE"
    assert body["instance"] == "/api/v1/availability"


def test_reversed_range_rejected(client):
    response = client.get(
        "/api/v1/availability",
        params={"start_date": THURSDAY.isoformat(), "end_date": WEDNESDAY.isoformat()},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_RANGE"


def test_malformed_date_is_invalid_range(client):
    response = client.get(
        "/api/v1/availability",
        params={"start_date": "2030-13-45", "end_date": WEDNESDAY.isoformat()},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_RANGE"
    assert body["details"]["start_date"] == "2030-13-45"


def test_malformed_session_range_is_invalid_range(client):
    response = client.get(
        "/api/v1/availability/sessions",
        params={"start_date": WEDNESDAY.isoformat(), "end_date": "next week"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_RANGE"


def test_slots_for_every_date(client, wednesday_template):
    response = client.get(
        "/api/v1/availability",
        params={
            "start_date": WEDNESDAY.isoformat(),
            "end_date": THURSDAY.isoformat(),
            "duration_minutes": 60,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["duration_minutes"] == 60
    assert body["mode"] == "STRICT_OVERLAP"
    assert body["slots"][THURSDAY.isoformat()] == []
    first = body["slots"][WEDNESDAY.isoformat()][0]
    assert first == {
        "time": "08:00",
        "end_time": "09:00",
        "available": True,
        "reason": "OK",
        "is_extra": False,
        "note": None,
    }


def test_reserved_window_reported(client, wednesday_template):
    client.post(
        "/api/v1/reservations",
        json={"date": WEDNESDAY.isoformat(), "time": "09:00", "duration_minutes": 45},
    )

    response = client.get(
        "/api/v1/availability",
        params={"start_date": WEDNESDAY.isoformat(), "end_date": WEDNESDAY.isoformat()},
    )

    windows = {w["time"]: w for w in response.json()["slots"][WEDNESDAY.isoformat()]}
    assert windows["09:00"]["reason"] == "RESERVED"
    assert windows["09:00"]["available"] is False
    assert windows["10:00"]["reason"] == "OK"


def test_session_availability(client, make_session):
    session = make_session(max_participants=3)

    response = client.get(
        "/api/v1/availability/sessions",
        params={"start_date": WEDNESDAY.isoformat(), "end_date": WEDNESDAY.isoformat()},
    )

    assert response.status_code == 200
    [entry] = response.json()["sessions"]
    assert entry["id"] == session.id
    assert entry["seats_left"] == 3
    assert entry["time"] == "10:00"
