# tests/api/v1/test_health_api.py


def test_health(test_client):
    response = test_client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_database_health(test_client):
    response = test_client.get("/api/v1/health/db")
    assert response.status_code == 200
    assert response.json()["component"] == "database"


def test_scheduler_disabled_in_tests(test_client):
    response = test_client.get("/api/v1/health/scheduler")
    assert response.json()["status"] == "disabled"


def test_root(test_client):
    assert test_client.get("/").json() == {"status": "Market Service is running"}
