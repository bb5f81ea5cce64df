from tests.helpers.clock import WEDNESDAY


def test_reaper_requires_secret(client):
    response = client.post(
        "/api/v1/internal/reaper/run", headers={"Authorization": "Bearer wrong"}
    )

    assert response.status_code == 401
    assert response.json()["code"] == "REAPER_SECRET_INVALID"


def test_reaper_run_releases_expired_hold(client, clock, reaper_headers, wednesday_template):
    client.post(
        "/api/v1/reservations",
        json={"date": WEDNESDAY.isoformat(), "time": "09:00", "duration_minutes": 45},
    )
    clock.advance(minutes=11)

    first = client.post("/api/v1/internal/reaper/run", headers=reaper_headers)
    second = client.post("/api/v1/internal/reaper/run", headers=reaper_headers)

    assert first.status_code == 200
    assert first.json()["released_one_to_one"] == 1
    assert first.json()["total"] == 1
    assert second.json()["total"] == 0


def test_reaper_stats(client, reaper_headers):
    response = client.get("/api/v1/internal/reaper/stats", headers=reaper_headers)

    assert response.status_code == 200
    assert response.json()["holds"] == 0
    assert response.json()["hold_ttl_minutes"] == 10


def test_reconcile(client, reaper_headers):
    response = client.post("/api/v1/internal/reaper/reconcile", headers=reaper_headers)

    assert response.status_code == 200
    assert response.json() == {"corrected": 0, "corrections": []}


def test_outbox_dispatch(client, reaper_headers, wednesday_template):
    client.post(
        "/api/v1/reservations",
        json={"date": WEDNESDAY.isoformat(), "time": "09:00", "duration_minutes": 45},
    )

    response = client.post("/api/v1/internal/outbox/dispatch", headers=reaper_headers)

    assert response.status_code == 200
    assert response.json() == {"sent": 1, "retrying": 0, "failed": 0}
