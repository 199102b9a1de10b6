# reading_tracker/tracker.py
from fastapi import Request
from typing import Optional
import logging

from reading_tracker.database import Database
from reading_tracker.services.article_service import ArticleService
from reading_tracker.services.event_recorder import EventRecorder
from reading_tracker.services.link_store import LinkStore
from reading_tracker.services.query_service import QueryService
from reading_tracker.services.tag_engine import TagEngine

logger = logging.getLogger(__name__)


class Tracker:
    """Wires every component onto one shared Database."""

    def __init__(self, database: Optional[Database] = None):
        self.database = database or Database()
        self.events = EventRecorder(self.database)
        self.links = LinkStore(self.database, self.events)
        self.tags = TagEngine(self.database, self.events)
        self.queries = QueryService(self.database, self.events)
        self.articles = ArticleService(self.database)

    @property
    def is_ready(self) -> bool:
        return self.database.is_ready

    async def start(self) -> None:
        await self.database.init()

    async def stop(self) -> None:
        await self.database.dispose()
        logger.info("Tracker stopped")


def get_tracker(request: Request) -> Tracker:
    return request.app.state.tracker
