def test_health_and_root(client):
    assert client.get("/health").json()["status"] == "ok"

    root = client.get("/").json()
    assert root["api"] == "/api/v1"
    assert root["object_store"] == "fs"
    assert root["features"]["payouts"] is True


def test_openapi_documents_error_bodies(client):
    spec = client.get("/api/v1/openapi.json").json()
    accept = spec["paths"]["/api/v1/jobs/{job_id}/accept"]["post"]
    assert {"401", "403", "404", "409"} <= set(accept["responses"])
