def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["components"]["database"] == "healthy"


def test_config_exposes_matching_settings(client, settings):
    body = client.get("/config").json()

    assert body["matching"] == {
        "auto_match_threshold": settings.auto_match_threshold,
        "amount_tolerance_minor": settings.amount_tolerance_minor,
    }
    assert "database_url" not in body
