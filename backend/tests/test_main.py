from fastapi.testclient import TestClient

from dashboard.main import create_app


def test_app_mounts_settings_routes_under_api_prefix():
    client = TestClient(create_app())

    validate = client.post("/api/settings/validate", json={"serviceName": "Instagram", "apiKey": "author.handle"})
    assert validate.status_code == 200
    assert client.put("/api/settings").status_code == 405
    assert client.options("/api/settings").status_code == 200
    assert client.get("/api/test").status_code == 200
    assert client.get("/settings").status_code == 404


def test_root_endpoint():
    client = TestClient(create_app())
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to Author Dashboard API"}
    # CORS headers are only forced onto API routes
    assert "X-Request-Duration-ms" not in response.headers
