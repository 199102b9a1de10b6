# reading_tracker/services/tag_engine.py
"""Free-text tags on links, stored as one comma-joined column.

add_tag/remove_tag read the current list and write the whole string back.
Two overlapping calls on the same link can lose one of the updates.
"""
from sqlalchemy import select, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from typing import Callable, Iterable, List, Optional
import logging

from reading_tracker import config
from reading_tracker.database import Database, StorageError, StoreResult, storage_failure
from reading_tracker.identity import NativeId
from reading_tracker.models import Link
from reading_tracker.schemas import LinkResponse
from reading_tracker.services.event_recorder import EventRecorder
from reading_tracker.services.link_store import find_link
from reading_tracker.tags import clean_tag, join_tags, parse_tags

logger = logging.getLogger(__name__)


def has_tags():
    return and_(Link.tags.is_not(None), Link.tags != "")


class TagEngine:
    def __init__(self, database: Database, events: EventRecorder):
        self.database = database
        self.events = events

    async def add_tag(
        self,
        link_id: Optional[NativeId],
        tag: Optional[str],
        on_error: Optional[Callable[[StorageError], None]] = None,
        url: Optional[str] = None
    ) -> StoreResult[List[str]]:
        """Add one tag (set semantics). Blank tags and unknown links are no-ops.

        The link is found by ``url`` when given, otherwise by any source's id
        for it.
        """
        return await self.add_tags(link_id, [tag], on_error=on_error, url=url)

    async def add_tags(
        self,
        link_id: Optional[NativeId],
        tags: Iterable[Optional[str]],
        on_error: Optional[Callable[[StorageError], None]] = None,
        url: Optional[str] = None
    ) -> StoreResult[List[str]]:
        new_tags = []
        for tag in tags:
            for cleaned in parse_tags(tag):
                if cleaned not in new_tags:
                    new_tags.append(cleaned)
        if not new_tags:
            return StoreResult.success(None)

        try:
            async with self.database.session() as session:
                link = await find_link(session, link_id, url)
                if link is None:
                    logger.info(f"Not tagging unknown link {link_id}")
                    return StoreResult.success(None)

                current = parse_tags(link.tags)
                added = [t for t in new_tags if t not in current]
                if not added:
                    return StoreResult.success(current)

                current.extend(added)
                link.tags = join_tags(current)
                await session.commit()
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure(f"tagging link {link_id}", e, on_error)

        await self.events.record_engagement(link, "add_tag", ",".join(added))
        return StoreResult.success(current)

    async def remove_tag(
        self,
        link_id: Optional[NativeId],
        tag: Optional[str],
        on_error: Optional[Callable[[StorageError], None]] = None,
        url: Optional[str] = None
    ) -> StoreResult[List[str]]:
        target = clean_tag(tag)
        if not target:
            return StoreResult.success(None)

        try:
            async with self.database.session() as session:
                link = await find_link(session, link_id, url)
                if link is None or not link.tags:
                    return StoreResult.success(None)

                current = parse_tags(link.tags)
                remaining = [t for t in current if t != target]
                if remaining == current:
                    return StoreResult.success(current)

                link.tags = join_tags(remaining)
                await session.commit()
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure(f"removing tag from link {link_id}", e, on_error)

        await self.events.record_engagement(link, "remove_tag", target)
        return StoreResult.success(remaining)

    async def list_story_tags(self, link_id: Optional[NativeId], url: Optional[str] = None) -> List[str]:
        try:
            async with self.database.session() as session:
                link = await find_link(session, link_id, url)
                return parse_tags(link.tags) if link is not None else []
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not read tags for {link_id}: {e}")
            return []

    async def list_all_unique_tags(self) -> List[str]:
        """Every tag in use, sorted. Scans all tagged links on each call."""
        try:
            async with self.database.session() as session:
                result = await session.execute(select(Link.tags).where(has_tags()).distinct())
                rows = result.scalars().all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not list tags: {e}")
            return []

        vocabulary = set()
        for raw in rows:
            vocabulary.update(parse_tags(raw))
        return sorted(vocabulary)

    async def search_by_tags(self, tag_query: Optional[str], limit: Optional[int] = None) -> List[LinkResponse]:
        """Links whose tag string contains ANY query tag as a substring.

        "ai" also matches a link tagged "fair". Results are ordered by
        impression count, then newest first seen.
        """
        terms = parse_tags(tag_query)
        if not terms:
            return []

        stmt = (
            select(Link)
            .where(has_tags(), or_(*[Link.tags.contains(t, autoescape=True) for t in terms]))
            .order_by(Link.impression_count.desc(), Link.first_seen_at.desc())
            .limit(limit or config.SEARCH_RESULT_LIMIT)
        )
        try:
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [LinkResponse.model_validate(link) for link in rows]
        except (StorageError, SQLAlchemyError) as e:
            logger.error(f"Error searching stories by tags: {e}")
            return []
