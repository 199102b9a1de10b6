# reading_tracker/services/link_store.py
from sqlalchemy import select, delete, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pydantic import ValidationError
from datetime import datetime
from typing import Callable, Iterable, Optional, Union
import logging

from reading_tracker import config
from reading_tracker.database import Database, StorageError, StoreResult, storage_failure
from reading_tracker.identity import NativeId, normalize_id
from reading_tracker.models import Article, ClickEvent, EventKind, Link, LinkAlias
from reading_tracker.schemas import LinkAppearance
from reading_tracker.services.event_recorder import EventRecorder

logger = logging.getLogger(__name__)

ErrorHandler = Optional[Callable[[StorageError], None]]


async def find_link(
    session: AsyncSession,
    native_id: Optional[NativeId] = None,
    url: Optional[str] = None
) -> Optional[Link]:
    """Stored link for a URL or any source's id for it.

    The URL wins when given. An id is tried as the link's own key first,
    then as an alias recorded when another source surfaced the same URL.
    """
    if url and url.strip():
        result = await session.execute(select(Link).where(Link.url == url.strip()))
        link = result.scalar_one_or_none()
        if link is not None:
            return link

    if native_id is None or native_id == "":
        return None
    link_id = normalize_id(native_id)
    link = await session.get(Link, link_id)
    if link is None:
        alias = await session.get(LinkAlias, link_id)
        if alias is not None:
            link = await session.get(Link, alias.link_id)
    return link


def unstored_id(native_id: Optional[NativeId], url: Optional[str]) -> Optional[int]:
    """Key for a link not stored yet: its own id, or the hash of its URL."""
    if native_id is not None and native_id != "":
        return normalize_id(native_id)
    if not url or not url.strip():
        return None
    return normalize_id(url.strip())


class LinkStore:
    """Distinct links (one row per URL) and their impression counters."""

    def __init__(self, database: Database, events: EventRecorder):
        self.database = database
        self.events = events

    async def record_appearance(
        self,
        link: Union[LinkAppearance, dict],
        on_error: ErrorHandler = None
    ) -> StoreResult[Link]:
        """Insert a newly surfaced link or bump the counters of a known URL.

        On a known URL only impression_count, points, comments and last_seen_at
        change; title and first_seen_at keep their first-seen values.
        """
        if isinstance(link, dict):
            try:
                link = LinkAppearance(**link)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed link: {e.errors()}")
                return StoreResult.success(None)

        link_id = normalize_id(link.id)
        now = datetime.utcnow()

        stmt = insert(Link).values(
            id=link_id,
            source_native_id=str(link.id),
            source=link.source,
            title=link.title,
            url=link.url,
            points=link.points,
            comments=link.comments,
            impression_count=1,
            first_seen_at=now,
            last_seen_at=now,
        ).on_conflict_do_update(
            index_elements=[Link.url],
            set_={
                "impression_count": Link.impression_count + 1,
                "points": link.points,
                "comments": link.comments,
                "last_seen_at": now,
            }
        )

        try:
            async with self.database.session() as session:
                await session.execute(stmt)
                result = await session.execute(select(Link).where(Link.url == link.url))
                row = result.scalar_one()
                if row.id != link_id:
                    # Same URL already stored under another source's id
                    await session.execute(
                        insert(LinkAlias)
                        .values(alias_id=link_id, link_id=row.id, created_at=now)
                        .on_conflict_do_nothing(index_elements=[LinkAlias.alias_id])
                    )
                if row.impression_count == 1:
                    # First appearance: adopt clicks that arrived earlier under another key
                    await session.execute(
                        update(ClickEvent)
                        .where(ClickEvent.url == row.url, ClickEvent.link_id != row.id)
                        .values(link_id=row.id)
                    )
                await session.commit()
                return StoreResult.success(row)
        except IntegrityError as e:
            # Same normalized id already owned by another URL
            error = StorageError(f"Story id {link_id} already used by a different URL ({link.url}): {e.orig}")
            return storage_failure("recording appearance", error, on_error)
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure(f"recording appearance of {link.url}", e, on_error)

    async def record_appearances(self, links: Iterable[Union[LinkAppearance, dict]]) -> int:
        """Record one refresh cycle's worth of links, returns how many were written."""
        written = 0
        for link in links:
            result = await self.record_appearance(link)
            if result.ok and result.value is not None:
                written += 1
        return written

    async def resolve_id(self, native_id: Optional[NativeId], url: Optional[str]) -> Optional[int]:
        """Canonical id for a click.

        The stored link for ``url`` decides, whichever source's id came with
        the click. Without a stored link the native id is normalized, and
        without an id the URL itself is hashed.
        """
        link = await self.find(native_id, url)
        if link is not None:
            return link.id
        return unstored_id(native_id, url)

    async def find(self, native_id: Optional[NativeId] = None, url: Optional[str] = None) -> Optional[Link]:
        try:
            async with self.database.session() as session:
                return await find_link(session, native_id, url)
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not look up link {native_id or url}: {e}")
            return None

    async def record_click(
        self,
        native_id: Optional[NativeId],
        title: Optional[str],
        url: Optional[str],
        points: Optional[int] = None,
        comments: Optional[int] = None,
        kind: EventKind = EventKind.article,
        source: Optional[str] = None,
        on_error: ErrorHandler = None,
    ) -> StoreResult[ClickEvent]:
        """Append a click with a snapshot of the link as the user saw it.

        A click on a link that never had an appearance recorded is accepted;
        its first-seen time is taken to be now.
        """
        if not url or not url.strip():
            logger.warning("Ignoring click without a URL")
            return StoreResult.success(None)
        url = url.strip()

        link = await self.find(native_id, url) if self.database.is_ready else None
        if link is not None:
            link_id = link.id
            first_seen_at = link.first_seen_at
        else:
            link_id = unstored_id(native_id, url)
            first_seen_at = datetime.utcnow()

        return await self.events.record(
            link_id=link_id,
            url=url,
            kind=kind,
            title=title,
            points=points,
            comments=comments,
            source=source,
            link_first_seen_at=first_seen_at,
            on_error=on_error,
        )

    async def get_link(self, native_id: NativeId) -> Optional[Link]:
        """Link by its own id or by an alias id from another source."""
        return await self.find(native_id=native_id)

    async def get_link_by_url(self, url: Optional[str]) -> Optional[Link]:
        if not url or not url.strip():
            return None
        try:
            async with self.database.session() as session:
                result = await session.execute(select(Link).where(Link.url == url.strip()))
                return result.scalar_one_or_none()
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(f"Could not load link {url}: {e}")
            return None

    async def clear_all(self, on_error: ErrorHandler = None) -> StoreResult[int]:
        """Delete every link, alias, event and saved article. Development only."""
        if not config.is_development():
            logger.error("clear_all can only be used in development mode")
            return StoreResult.failure(StorageError("clear_all is disabled outside development"), on_error)
        try:
            async with self.database.session() as session:
                await session.execute(delete(Article))
                await session.execute(delete(LinkAlias))
                events = await session.execute(delete(ClickEvent))
                links = await session.execute(delete(Link))
                await session.commit()
        except (StorageError, SQLAlchemyError) as e:
            return storage_failure("clearing database", e, on_error)
        logger.info(f"Database cleared: {links.rowcount} links, {events.rowcount} events")
        return StoreResult.success(links.rowcount)
