import pytest

from reading_tracker.database import Database
from reading_tracker.tracker import Tracker


@pytest.fixture
def db_url(tmp_path):
    """Fresh sqlite file per test"""
    return f"sqlite+aiosqlite:///{tmp_path / 'test_clicks.db'}"


@pytest.fixture
async def tracker(db_url):
    tracker = Tracker(Database(db_url))
    await tracker.start()
    yield tracker
    await tracker.stop()


@pytest.fixture
def unready_tracker(db_url):
    """Tracker whose database was never initialized"""
    return Tracker(Database(db_url))


@pytest.fixture
def seed(tracker):
    """Record each link dict once"""
    async def _seed(*links):
        for link in links:
            result = await tracker.links.record_appearance(link)
            assert result.ok
    return _seed
