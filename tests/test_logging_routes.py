from __future__ import annotations

from estatepulse.logging_service import MAX_FEED_SIZE, LogQuery


def test_feed_returns_recent_entries(client):
    client.get("/")

    data = client.get("/logs/feed?component=Portfolio").get_json()

    assert data["logs"][0]["title"] == "Project list opened"
    assert data["count"] == len(data["logs"]) == 1


def test_feed_filters_by_level(client):
    client.post("/projects", data={"name": "X", "location": "Goa"})

    warnings = client.get("/logs/feed?level=warn").get_json()["logs"]

    assert [entry["result"] for entry in warnings] == ["denied"]


def test_feed_filters_denied_actions(client):
    client.get("/")
    client.post("/projects", data={"name": "X", "location": "Goa"})

    denied = client.get("/logs/feed?result=denied").get_json()["logs"]

    assert [entry["action"] for entry in denied] == ["create-project"]
    assert "editor session" in denied[0]["user_summary"]


def test_console_renders_with_filters(client):
    client.post("/projects", data={"name": "X", "location": "Goa"})

    response = client.get("/logs/?result=denied")

    assert response.status_code == 200
    assert b"System Logs" in response.data
    assert b"Privileged action skipped" in response.data
    assert b"Project list opened" not in response.data


def test_query_drops_unknown_filters_and_clamps_limit():
    query = LogQuery.from_args({"level": "debug", "result": "maybe", "limit": "9999", "search": "  "})

    assert query == LogQuery(limit=MAX_FEED_SIZE)
    assert LogQuery.from_args({"limit": "abc"}).limit == 50
    assert LogQuery.from_args({"limit": "0"}).limit == 1


def test_retention_trims_old_entries(app, client):
    app.config["LOG_RETENTION"] = 3
    for _ in range(5):
        client.get("/")

    assert len(client.get("/logs/feed?limit=50").get_json()["logs"]) == 3
