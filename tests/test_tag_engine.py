import pytest

from reading_tracker.models import EventKind
from reading_tracker.schemas import LinkResponse
from reading_tracker.tags import parse_tags


def test_parse_tags_normalizes():
    assert parse_tags(" AI , ml,,Ai ,  ") == ["ai", "ml"]
    assert parse_tags(None) == []
    assert parse_tags("") == []


@pytest.mark.asyncio
async def test_add_tag_trims_and_lowercases(tracker, seed):
    await seed({"id": 42, "title": "A", "url": "http://x"})

    await tracker.tags.add_tag(42, "  AI  ")

    assert await tracker.tags.list_story_tags(42) == ["ai"]


@pytest.mark.asyncio
async def test_add_tag_is_idempotent(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})

    await tracker.tags.add_tag(1, "python")
    first = await tracker.tags.list_story_tags(1)
    result = await tracker.tags.add_tag(1, "Python")

    assert result.ok
    assert await tracker.tags.list_story_tags(1) == first == ["python"]


@pytest.mark.asyncio
async def test_add_tag_appends_in_order(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})

    await tracker.tags.add_tag(1, "rust")
    await tracker.tags.add_tag(1, "wasm")

    assert await tracker.tags.list_story_tags(1) == ["rust", "wasm"]


@pytest.mark.asyncio
async def test_add_tags_writes_several_at_once(tracker, seed):
    await seed({"id": "p1", "title": "A", "url": "http://a"})

    result = await tracker.tags.add_tags("p1", ["Go", "databases", "go", " "])

    assert result.value == ["go", "databases"]
    assert await tracker.tags.list_story_tags("p1") == ["go", "databases"]


@pytest.mark.asyncio
async def test_blank_tag_is_a_no_op(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})

    result = await tracker.tags.add_tag(1, "   ")

    assert result.ok
    assert result.value is None
    assert await tracker.tags.list_story_tags(1) == []
    assert await tracker.events.count_for_link(1, EventKind.engagement) == 0


@pytest.mark.asyncio
async def test_tagging_unknown_link_is_a_no_op(tracker, seed):
    result = await tracker.tags.add_tag(404, "ghost")
    assert result.ok
    assert result.value is None
    assert await tracker.tags.list_story_tags(404) == []


@pytest.mark.asyncio
async def test_remove_tag(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})
    await tracker.tags.add_tags(1, ["javascript", "react", "nodejs"])

    result = await tracker.tags.remove_tag(1, " React ")

    assert result.value == ["javascript", "nodejs"]
    assert await tracker.tags.list_story_tags(1) == ["javascript", "nodejs"]


@pytest.mark.asyncio
async def test_remove_on_unknown_link_or_tag_is_a_no_op(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})
    await tracker.tags.add_tag(1, "keep")

    assert (await tracker.tags.remove_tag(999, "keep")).ok
    assert (await tracker.tags.remove_tag(1, "missing")).ok
    assert (await tracker.tags.remove_tag(1, "")).ok
    assert await tracker.tags.list_story_tags(1) == ["keep"]


@pytest.mark.asyncio
async def test_remove_then_add_round_trip(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})
    await tracker.tags.add_tags(1, ["ai", "ml"])
    before = set(await tracker.tags.list_story_tags(1))

    await tracker.tags.remove_tag(1, "ai")
    await tracker.tags.add_tag(1, "ai")

    assert set(await tracker.tags.list_story_tags(1)) == before


@pytest.mark.asyncio
async def test_removing_last_tag_untags_link(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})
    await tracker.tags.add_tag(1, "solo")

    await tracker.tags.remove_tag(1, "solo")

    assert await tracker.tags.list_story_tags(1) == []
    assert await tracker.tags.list_all_unique_tags() == []


@pytest.mark.asyncio
async def test_tag_changes_record_engagement(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})

    await tracker.tags.add_tag(1, "ai")
    await tracker.tags.add_tag(1, "ai")
    await tracker.tags.remove_tag(1, "ai")

    assert await tracker.events.count_for_link(1, EventKind.engagement) == 2
    assert await tracker.events.count_for_link(1, EventKind.article) == 0
    events = await tracker.events.recent_events(kind=EventKind.engagement)
    assert {e.detail for e in events} == {"add_tag:ai", "remove_tag:ai"}


@pytest.mark.asyncio
async def test_unique_tags_sorted_without_duplicates(tracker, seed):
    await seed(
        {"id": 1, "title": "A", "url": "http://a"},
        {"id": 2, "title": "B", "url": "http://b"},
        {"id": 3, "title": "C", "url": "http://c"},
    )
    await tracker.tags.add_tags(1, ["zeta", "alpha"])
    await tracker.tags.add_tags(2, ["alpha", "mid"])
    await tracker.tags.add_tags(3, ["zeta", "alpha"])

    tags = await tracker.tags.list_all_unique_tags()

    assert tags == ["alpha", "mid", "zeta"]
    assert tags == sorted(set(tags))


@pytest.mark.asyncio
async def test_search_empty_query_returns_nothing(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})
    await tracker.tags.add_tag(1, "ai")

    assert await tracker.tags.search_by_tags("") == []
    assert await tracker.tags.search_by_tags("  , ") == []
    assert await tracker.tags.search_by_tags(None) == []


@pytest.mark.asyncio
async def test_search_matches_any_tag_by_substring(tracker, seed):
    await seed(
        {"id": 1, "title": "foo", "url": "http://1"},
        {"id": 2, "title": "baz", "url": "http://2"},
        {"id": 3, "title": "neither", "url": "http://3"},
        {"id": 4, "title": "superstring", "url": "http://4"},
        {"id": 5, "title": "untagged", "url": "http://5"},
    )
    await tracker.tags.add_tag(1, "foobar")
    await tracker.tags.add_tag(2, "baz")
    await tracker.tags.add_tag(3, "qux")
    await tracker.tags.add_tag(4, "foobarista")

    results = await tracker.tags.search_by_tags("fooBAR, Baz")

    assert {link.id for link in results} == {1, 2, 4}


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(tracker, seed):
    await seed(
        {"id": 1, "title": "a", "url": "http://1"},
        {"id": 2, "title": "b", "url": "http://2"},
    )
    await tracker.tags.add_tag(1, "c_plus")
    await tracker.tags.add_tag(2, "cxplus")

    results = await tracker.tags.search_by_tags("c_plus")
    assert [link.id for link in results] == [1]
    assert await tracker.tags.search_by_tags("%") == []


@pytest.mark.asyncio
async def test_search_orders_by_impressions_and_caps_results(tracker, seed):
    for i in range(25):
        await seed({"id": i + 1, "title": f"t{i}", "url": f"http://{i}"})
        await tracker.tags.add_tag(i + 1, "news")
    # Link 25 surfaces two more times
    await seed({"id": 25, "title": "t24", "url": "http://24"})
    await seed({"id": 25, "title": "t24", "url": "http://24"})

    results = await tracker.tags.search_by_tags("news")

    assert len(results) == 20
    assert results[0].id == 25
    assert results[0].impression_count == 3
    # Ties fall back to newest first seen
    assert results[1].id == 24


@pytest.mark.asyncio
async def test_reads_before_init_return_empty(unready_tracker):
    assert await unready_tracker.tags.list_story_tags(1) == []
    assert await unready_tracker.tags.list_all_unique_tags() == []
    assert await unready_tracker.tags.search_by_tags("ai") == []
    result = await unready_tracker.tags.add_tag(1, "ai")
    assert result.ok is False


@pytest.mark.asyncio
async def test_tag_with_second_source_id_lands_on_stored_link(tracker, seed):
    await seed(
        {"id": 1, "title": "HN", "url": "https://blog/post", "source": "hn"},
        {"id": "pin-9", "title": "Pinboard", "url": "https://blog/post", "source": "pinboard"},
    )

    result = await tracker.tags.add_tag("pin-9", "Rust")

    assert result.ok
    assert result.value == ["rust"]
    assert await tracker.tags.list_story_tags(1) == ["rust"]
    assert await tracker.tags.list_story_tags("pin-9") == ["rust"]

    removed = await tracker.tags.remove_tag("pin-9", "rust")
    assert removed.value == []
    assert await tracker.tags.list_story_tags(1) == []


@pytest.mark.asyncio
async def test_tag_by_url_when_id_is_unknown(tracker, seed):
    await seed({"id": 1, "title": "HN", "url": "https://blog/post"})

    result = await tracker.tags.add_tag("never-seen", "ai", url=" https://blog/post ")

    assert result.value == ["ai"]
    assert await tracker.tags.list_story_tags(None, url="https://blog/post") == ["ai"]
    events = await tracker.events.recent_events(kind=EventKind.engagement)
    assert [e.link_id for e in events] == [1]


@pytest.mark.asyncio
async def test_search_returns_response_records(tracker, seed):
    await seed({"id": 1, "title": "A", "url": "http://a"})
    await tracker.tags.add_tags(1, ["ai", "ml"])

    results = await tracker.tags.search_by_tags("ml")

    assert isinstance(results[0], LinkResponse)
    assert results[0].tags == ["ai", "ml"]
