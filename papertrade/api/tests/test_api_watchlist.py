def test_watchlist_flow(client, auth_headers):
    # WHEN
    added = client.post("/api/v1/watchlist", json={"symbol": "tcs"}, headers=auth_headers)
    again = client.post("/api/v1/watchlist", json={"symbol": "TCS"}, headers=auth_headers)
    client.post("/api/v1/watchlist", json={"symbol": "NOPE"}, headers=auth_headers)
    listing = client.get("/api/v1/watchlist", headers=auth_headers)

    # THEN
    assert added.status_code == 201
    assert added.json()["data"]["added"] is True
    assert again.json()["data"]["added"] is False
    assert again.json()["message"] == "Already in watchlist"

    data = listing.json()["data"]
    assert data["total"] == 2
    by_symbol = {s["symbol"]: s for s in data["stocks"]}
    assert by_symbol["TCS"]["current_price"] == 3500.0
    assert by_symbol["TCS"]["price_updated"] is True
    assert by_symbol["NOPE"]["price_updated"] is False


def test_watchlist_status_and_remove(client, auth_headers):
    client.post("/api/v1/watchlist", json={"symbol": "INFY"}, headers=auth_headers)

    status_before = client.get("/api/v1/watchlist/infy/status", headers=auth_headers).json()["data"]
    removed = client.delete("/api/v1/watchlist/INFY", headers=auth_headers).json()
    removed_again = client.delete("/api/v1/watchlist/INFY", headers=auth_headers).json()
    status_after = client.get("/api/v1/watchlist/INFY/status", headers=auth_headers).json()["data"]

    assert status_before == {"symbol": "INFY", "in_watchlist": True}
    assert removed["data"]["removed"] is True
    assert removed_again["message"] == "Not in watchlist"
    assert status_after["in_watchlist"] is False


def test_watchlist_requires_auth(client):
    assert client.get("/api/v1/watchlist").status_code in (401, 403)
