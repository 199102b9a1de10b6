# reading_tracker/services/event_recorder.py
"""Append-only history of clicks and engagement actions."""
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
import logging

from reading_tracker.database import Database, StorageError, StoreResult, storage_failure
from reading_tracker.models import ClickEvent, EventKind, Link
from reading_tracker.schemas import DailyCount

logger = logging.getLogger(__name__)


class EventRecorder:
    def __init__(self, database: Database):
        self.database = database

    async def record(
        self,
        link_id: int,
        url: str,
        kind: EventKind = EventKind.article,
        title: Optional[str] = None,
        points: Optional[int] = None,
        comments: Optional[int] = None,
        source: Optional[str] = None,
        detail: Optional[str] = None,
        link_first_seen_at: Optional[datetime] = None,
        on_error: Optional[Callable[[StorageError], None]] = None,
    ) -> StoreResult[ClickEvent]:
        """Append one event. Its snapshot is never updated afterwards.

        The only later write is LinkStore re-keying a click that arrived
        before its link first appeared.
        """
        try:
            async with self.database.session() as session:
                event = ClickEvent(
                    link_id=link_id,
                    kind=EventKind(kind),
                    source=source,
                    title=title,
                    url=url,
                    points=points,
                    comments=comments,
                    detail=detail,
                    link_first_seen_at=link_first_seen_at,
                    clicked_at=datetime.utcnow(),
                )
                session.add(event)
                await session.commit()
                await session.refresh(event)
                return StoreResult.success(event)
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure(f"recording {EventKind(kind).value} event for {url}", e, on_error)

    async def record_engagement(self, link: Link, action: str, detail: Optional[str] = None) -> StoreResult[ClickEvent]:
        """Record a curation action (tagging) against the link's current snapshot."""
        return await self.record(
            link_id=link.id,
            url=link.url,
            kind=EventKind.engagement,
            title=link.title,
            points=link.points,
            comments=link.comments,
            source=link.source,
            detail=f"{action}:{detail}" if detail else action,
            link_first_seen_at=link.first_seen_at,
        )

    async def count_for_link(self, link_id: int, kind: EventKind = EventKind.article) -> int:
        stmt = select(func.count(ClickEvent.id)).where(
            ClickEvent.link_id == link_id,
            ClickEvent.kind == kind
        )
        try:
            async with self.database.session() as session:
                return (await session.execute(stmt)).scalar_one()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not count events for {link_id}: {e}")
            return 0

    async def last_event_at(self, link_id: int, kind: EventKind = EventKind.article) -> Optional[datetime]:
        stmt = select(func.max(ClickEvent.clicked_at)).where(
            ClickEvent.link_id == link_id,
            ClickEvent.kind == kind
        )
        try:
            async with self.database.session() as session:
                return (await session.execute(stmt)).scalar_one_or_none()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not read last event for {link_id}: {e}")
            return None

    async def counts_by_link(self, kind: EventKind = EventKind.article) -> Dict[int, int]:
        """Number of events of one kind per link id."""
        stmt = (
            select(ClickEvent.link_id, func.count(ClickEvent.id))
            .where(ClickEvent.kind == kind)
            .group_by(ClickEvent.link_id)
        )
        try:
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not count events by link: {e}")
            return {}
        return {link_id: count for link_id, count in rows}

    async def daily_counts(self, days: int = 30, kind: EventKind = EventKind.article) -> List[DailyCount]:
        """Events per calendar day (UTC) over the last ``days`` days, oldest first."""
        cutoff = datetime.utcnow() - timedelta(days=days)
        day = func.date(ClickEvent.clicked_at)
        stmt = (
            select(day, func.count(ClickEvent.id))
            .where(ClickEvent.kind == kind, ClickEvent.clicked_at >= cutoff)
            .group_by(day)
            .order_by(day)
        )
        try:
            async with self.database.session() as session:
                rows = (await session.execute(stmt)).all()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not compute daily counts: {e}")
            return []
        return [DailyCount(day=str(d), count=c) for d, c in rows]

    async def recent_events(self, limit: int = 50, kind: Optional[EventKind] = None) -> List[ClickEvent]:
        stmt = select(ClickEvent)
        if kind is not None:
            stmt = stmt.where(ClickEvent.kind == kind)
        stmt = stmt.order_by(ClickEvent.clicked_at.desc(), ClickEvent.id.desc()).limit(limit)
        try:
            async with self.database.session() as session:
                return list((await session.execute(stmt)).scalars().all())
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not list events: {e}")
            return []
