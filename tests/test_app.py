"""Tests for app-level wiring: health, error rendering, global rate limit."""


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == "CoinCoach"


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "coincoach-api"}


def test_invalid_body_is_400(client):
    response = client.post("/api/v1/quiz/score", json={"questions": "nope", "userAnswers": []})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request")


def test_global_limit_applies_per_client(app, client):
    from coincoach.main import settings

    headers = {"x-forwarded-for": "192.0.2.50"}
    for _ in range(settings.rate_limit_per_minute):
        assert client.get("/api/v1/health", headers=headers).status_code == 200

    assert client.get("/api/v1/health", headers=headers).status_code == 429
    assert client.get("/api/v1/health", headers={"x-forwarded-for": "192.0.2.51"}).status_code == 200
