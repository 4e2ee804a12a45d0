def test_healthz(client):
    rv = client.get("/healthz")
    assert rv.status_code == 200
    assert rv.json["ok"] is True
    assert rv.json["networks"] == ["mainnet", "testnet"]


def test_indexer_describe(client):
    rv = client.get("/api/indexer")
    assert rv.status_code == 200
    assert rv.json["success"] is True
