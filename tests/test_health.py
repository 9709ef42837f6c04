async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["environment"] == "development"
    assert "timestamp" in body
    assert r.headers["X-Request-ID"]


async def test_unknown_route_is_json_404(client):
    r = await client.get("/api/nope")
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Cannot GET /api/nope"
