import pytest
from httpx import AsyncClient, ASGITransport

from reading_tracker.identity import normalize_id
from reading_tracker.main import create_app


@pytest.fixture
async def client(tracker):
    app = create_app(tracker)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_ping(client):
    response = await client.get("/api/ping")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["ready"] is True


@pytest.mark.asyncio
async def test_appearance_then_unread(client):
    response = await client.post(
        "/api/database/appearance",
        json={"id": 42, "title": "A", "url": "http://x", "points": 10, "comments": 2, "source": "hn"}
    )
    assert response.status_code == 201
    assert response.json()["data"]["impression_count"] == 1

    response = await client.get("/api/database/unread")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [link["id"] for link in data["data"]] == [42]


@pytest.mark.asyncio
async def test_track_click(client):
    await client.post("/api/database/appearance", json={"id": "abc", "title": "A", "url": "http://a"})

    response = await client.post(
        "/api/database/track-click",
        json={"url": "http://a", "storyId": "abc", "source": "reddit", "clickType": "article"}
    )
    assert response.status_code == 200
    assert response.json()["link_id"] == normalize_id("abc")

    recent = (await client.get("/api/database/recent")).json()["data"]
    assert recent[0]["url"] == "http://a"
    assert recent[0]["click_count"] == 1
    assert (await client.get("/api/database/unread")).json()["data"] == []


@pytest.mark.asyncio
async def test_track_click_requires_url(client):
    response = await client.post("/api/database/track-click", json={"storyId": 1})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_track_click_rejects_unknown_type(client):
    response = await client.post("/api/database/track-click", json={"url": "http://a", "clickType": "hover"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_tag_routes(client):
    await client.post("/api/database/appearance", json={"id": 7, "title": "Seven", "url": "http://7"})

    response = await client.post("/api/database/links/7/tags", json={"tag": "  Rust "})
    assert response.json()["data"] == ["rust"]
    await client.post("/api/database/links/7/tags", json={"tag": "wasm"})

    assert (await client.get("/api/database/tags")).json()["data"] == ["rust", "wasm"]

    found = (await client.get("/api/database/search", params={"tags": "RUST"})).json()["data"]
    assert [link["id"] for link in found] == [7]
    assert found[0]["tags"] == ["rust", "wasm"]

    response = await client.delete("/api/database/links/7/tags/rust")
    assert response.json()["data"] == ["wasm"]


@pytest.mark.asyncio
async def test_collection_routes_on_empty_store(client):
    for path in ["unread", "recent", "all", "tags", "discover", "bag-of-links", "curated-bag", "search"]:
        response = await client.get(f"/api/database/{path}")
        assert response.status_code == 200, path
        assert response.json()["data"] == [], path


@pytest.mark.asyncio
async def test_analytics_routes(client):
    await client.post("/api/database/appearance", json={"id": 1, "title": "One", "url": "http://1", "source": "hn"})
    await client.post("/api/database/links/1/tags", json={"tag": "ai"})
    await client.post("/api/database/track-click", json={"url": "http://1", "storyId": 1})

    tag_stats = (await client.get("/api/analytics/tag-stats")).json()["data"]
    assert tag_stats[0]["tag"] == "ai"
    assert tag_stats[0]["viewed_count"] == 1

    dashboard = (await client.get("/api/analytics/dashboard")).json()["data"]
    assert dashboard["total_links"] == 1
    assert dashboard["sources"] == {"hn": 1}

    daily = (await client.get("/api/analytics/daily-clicks", params={"days": 7})).json()["data"]
    assert sum(day["count"] for day in daily) == 1

    events = (await client.get("/api/analytics/events", params={"kind": "engagement"})).json()["data"]
    assert len(events) == 1
    assert events[0]["detail"] == "add_tag:ai"


@pytest.mark.asyncio
async def test_clear_forbidden_outside_development(client, monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    response = await client.post("/api/database/clear")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_writes_before_ready_return_503(unready_tracker):
    app = create_app(unready_tracker)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post("/api/database/track-click", json={"url": "http://a"})
        assert response.status_code == 503

        response = await client.get("/api/database/unread")
        assert response.status_code == 200
        assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_track_click_from_second_source(client):
    await client.post("/api/database/appearance", json={"id": 1, "title": "HN", "url": "https://blog/post"})
    await client.post("/api/database/appearance", json={"id": "pin-9", "title": "Pin", "url": "https://blog/post"})

    response = await client.post(
        "/api/database/track-click",
        json={"url": "https://blog/post", "storyId": "pin-9", "title": "Pin", "source": "pinboard"}
    )

    assert response.json()["link_id"] == 1
    assert (await client.get("/api/database/unread")).json()["data"] == []
    recent = (await client.get("/api/database/recent")).json()["data"]
    assert [link["id"] for link in recent] == [1]


@pytest.mark.asyncio
async def test_tag_route_resolves_by_url(client):
    await client.post("/api/database/appearance", json={"id": 1, "title": "HN", "url": "https://blog/post"})
    unknown_id = normalize_id("never-seen")

    response = await client.post(
        f"/api/database/links/{unknown_id}/tags",
        params={"url": "https://blog/post"},
        json={"tag": "ai"}
    )

    assert response.json()["data"] == ["ai"]
    assert (await client.get("/api/database/links/1/tags")).json()["data"] == ["ai"]


@pytest.mark.asyncio
async def test_article_routes(client):
    response = await client.post("/api/articles", json={"url": "https://example.com/a", "title": "Read me"})
    assert response.status_code == 200
    saved = response.json()
    assert saved["success"] is True
    assert saved["domain"] == "example.com"
    article_id = saved["id"]

    response = await client.get(f"/api/articles/{article_id}")
    assert response.status_code == 200
    assert response.json()["title"] == "Read me"

    response = await client.post(f"/api/articles/{article_id}/click")
    assert response.json()["click_count"] == 1

    articles = (await client.get("/api/articles")).json()["articles"]
    assert [a["id"] for a in articles] == [article_id]

    results = (await client.get("/api/articles/search", params={"q": "read"})).json()["results"]
    assert [a["id"] for a in results] == [article_id]

    stats = (await client.get("/api/articles/stats")).json()
    assert stats["total_articles"] == 1
    assert stats["week_articles"] == 1


@pytest.mark.asyncio
async def test_article_route_errors(client):
    assert (await client.post("/api/articles", json={"title": "No url"})).status_code == 400
    assert (await client.get("/api/articles/search")).status_code == 400
    assert (await client.get("/api/articles/999")).status_code == 404
    assert (await client.post("/api/articles/999/click")).status_code == 404
