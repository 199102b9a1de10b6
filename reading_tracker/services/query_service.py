# reading_tracker/services/query_service.py
"""Read-side views combining links with their click history."""
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, List
import logging

from reading_tracker.database import Database, StorageError
from reading_tracker.models import ClickEvent, EventKind, Link
from reading_tracker.schemas import ClickedLinkResponse, DashboardStats, LinkResponse, TagStat
from reading_tracker.services.event_recorder import EventRecorder
from reading_tracker.services.tag_engine import has_tags
from reading_tracker.tags import parse_tags

logger = logging.getLogger(__name__)


def _article_clicked_ids():
    return select(ClickEvent.link_id).where(ClickEvent.kind == EventKind.article)


def _rate(part: int, total: int) -> float:
    return round(part * 100.0 / total, 1) if total else 0.0


class QueryService:
    def __init__(self, database: Database, events: EventRecorder):
        self.database = database
        self.events = events

    async def _links(self, stmt) -> List[LinkResponse]:
        try:
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Link query failed: {e}")
            return []
        return [LinkResponse.model_validate(row) for row in rows]

    async def unread_links(self, limit: int = 20, randomize: bool = False) -> List[LinkResponse]:
        """Links never opened. Newest surfaced first, or shuffled."""
        order = func.random() if randomize else Link.last_seen_at.desc()
        stmt = (
            select(Link)
            .where(Link.id.not_in(_article_clicked_ids()))
            .order_by(order)
            .limit(limit)
        )
        return await self._links(stmt)

    async def discover(self, limit: int = 20) -> List[LinkResponse]:
        """Unread links that keep resurfacing."""
        stmt = (
            select(Link)
            .where(Link.id.not_in(_article_clicked_ids()))
            .order_by(Link.impression_count.desc(), Link.last_seen_at.desc())
            .limit(limit)
        )
        return await self._links(stmt)

    async def all_links(self, limit: int = 100, offset: int = 0) -> List[LinkResponse]:
        stmt = (
            select(Link)
            .order_by(Link.impression_count.desc(), Link.first_seen_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return await self._links(stmt)

    async def untagged_links(self, limit: int = 10) -> List[LinkResponse]:
        """Titled links without tags, most surfaced first."""
        stmt = (
            select(Link)
            .where(or_(Link.tags.is_(None), Link.tags == ""))
            .where(Link.title.is_not(None), Link.title != "")
            .order_by(Link.impression_count.desc(), Link.last_seen_at.desc())
            .limit(limit)
        )
        return await self._links(stmt)

    async def bag_of_links(self, limit: int = 20) -> List[LinkResponse]:
        return await self._links(select(Link).order_by(func.random()).limit(limit))

    async def curated_bag(self, limit: int = 20) -> List[LinkResponse]:
        """Random sample of tagged links."""
        return await self._links(select(Link).where(has_tags()).order_by(func.random()).limit(limit))

    async def _clicked(self, order_by_count: bool, limit: int) -> List[ClickedLinkResponse]:
        click_count = func.count(ClickEvent.id).label("click_count")
        last_clicked = func.max(ClickEvent.clicked_at).label("last_clicked_at")
        order = [click_count.desc(), last_clicked.desc()] if order_by_count else [last_clicked.desc()]
        stmt = (
            select(Link, click_count, last_clicked)
            .join(ClickEvent, ClickEvent.link_id == Link.id)
            .where(ClickEvent.kind == EventKind.article)
            .group_by(Link.id)
            .order_by(*order)
            .limit(limit)
        )
        try:
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Clicked links query failed: {e}")
            return []

        results = []
        for link, count, last_at in rows:
            item = ClickedLinkResponse.model_validate(link)
            item.click_count = count
            item.last_clicked_at = last_at
            results.append(item)
        return results

    async def recently_clicked(self, limit: int = 20) -> List[ClickedLinkResponse]:
        return await self._clicked(order_by_count=False, limit=limit)

    async def most_clicked(self, limit: int = 20) -> List[ClickedLinkResponse]:
        return await self._clicked(order_by_count=True, limit=limit)

    async def tag_statistics(self) -> List[TagStat]:
        """Per-tag story count, viewed count, engagement total and mean impressions."""
        try:
            async with self.database.session() as session:
                rows = (await session.execute(
                    select(Link.id, Link.tags, Link.impression_count).where(has_tags())
                )).all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Tag statistics query failed: {e}")
            return []
        if not rows:
            return []

        clicks = await self.events.counts_by_link(EventKind.article)
        engagements = await self.events.counts_by_link(EventKind.engagement)

        stats: Dict[str, TagStat] = {}
        impressions: Dict[str, int] = {}
        for link_id, raw_tags, impression_count in rows:
            for tag in parse_tags(raw_tags):
                stat = stats.setdefault(tag, TagStat(tag=tag))
                stat.story_count += 1
                if clicks.get(link_id, 0) > 0:
                    stat.viewed_count += 1
                stat.engagement_count += engagements.get(link_id, 0)
                impressions[tag] = impressions.get(tag, 0) + (impression_count or 0)

        for tag, stat in stats.items():
            stat.avg_impressions = round(impressions[tag] / stat.story_count, 2)

        return sorted(stats.values(), key=lambda s: (-s.story_count, s.tag))

    async def dashboard_stats(self, days: int = 30) -> DashboardStats:
        try:
            async with self.database.session() as session:
                total_links = (await session.execute(select(func.count(Link.id)))).scalar_one()
                total_clicks = (await session.execute(
                    select(func.count(ClickEvent.id)).where(ClickEvent.kind == EventKind.article)
                )).scalar_one()
                viewed_links = (await session.execute(
                    select(func.count(Link.id)).where(Link.id.in_(_article_clicked_ids()))
                )).scalar_one()
                tagged_links = (await session.execute(
                    select(func.count(Link.id)).where(has_tags())
                )).scalar_one()
                sources = (await session.execute(
                    select(func.coalesce(Link.source, "unknown"), func.count(Link.id))
                    .group_by(func.coalesce(Link.source, "unknown"))
                    .order_by(func.count(Link.id).desc())
                )).all()
                tag_rows = (await session.execute(select(Link.tags).where(has_tags()))).scalars().all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Dashboard query failed: {e}")
            return DashboardStats()

        vocabulary = set()
        for raw in tag_rows:
            vocabulary.update(parse_tags(raw))

        return DashboardStats(
            total_links=total_links,
            total_clicks=total_clicks,
            viewed_links=viewed_links,
            tagged_links=tagged_links,
            untagged_links=total_links - tagged_links,
            unique_tags=len(vocabulary),
            click_rate=_rate(total_clicks, total_links),
            view_rate=_rate(viewed_links, total_links),
            tag_rate=_rate(tagged_links, total_links),
            sources={source: count for source, count in sources},
            daily_clicks=await self.events.daily_counts(days=days),
        )
