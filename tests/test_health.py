def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
    assert res.json()["database"] == "connected"


def test_root(client):
    assert client.get("/").json() == {"message": "Welcome to the Course Quiz API"}
