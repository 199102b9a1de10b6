from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional

from reading_tracker import config
from reading_tracker.models import EventKind
from reading_tracker.schemas import LinkAppearance, LinkResponse, TagUpdate, TrackClickRequest
from reading_tracker.tracker import Tracker, get_tracker

router = APIRouter(prefix="/api/database", tags=["database"])


def _ok(data):
    return {"success": True, "data": data}


@router.get("/unread")
async def unread(limit: int = 20, random: bool = False, tracker: Tracker = Depends(get_tracker)):
    """Links never opened"""
    return _ok(await tracker.queries.unread_links(limit=limit, randomize=random))


@router.get("/recent")
async def recent(limit: int = 20, tracker: Tracker = Depends(get_tracker)):
    """Recently clicked links"""
    return _ok(await tracker.queries.recently_clicked(limit=limit))


@router.get("/most-clicked")
async def most_clicked(limit: int = 20, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.queries.most_clicked(limit=limit))


@router.get("/all")
async def all_links(limit: int = 100, offset: int = 0, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.queries.all_links(limit=limit, offset=offset))


@router.get("/untagged")
async def untagged(limit: int = 10, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.queries.untagged_links(limit=limit))


@router.get("/tags")
async def all_tags(tracker: Tracker = Depends(get_tracker)):
    """Tag vocabulary"""
    return _ok(await tracker.tags.list_all_unique_tags())


@router.get("/discover")
async def discover(limit: int = 20, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.queries.discover(limit=limit))


@router.get("/bag-of-links")
async def bag_of_links(limit: int = 20, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.queries.bag_of_links(limit=limit))


@router.get("/curated-bag")
async def curated_bag(limit: int = 20, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.queries.curated_bag(limit=limit))


@router.get("/search")
async def search(tags: str = "", tracker: Tracker = Depends(get_tracker)):
    """Search links by comma-separated tags (any tag matches)"""
    return _ok(await tracker.tags.search_by_tags(tags))


@router.post("/appearance", status_code=status.HTTP_201_CREATED)
async def record_appearance(link: LinkAppearance, tracker: Tracker = Depends(get_tracker)):
    """Record one link surfaced by a feed refresh"""
    result = await tracker.links.record_appearance(link)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    return _ok(LinkResponse.model_validate(result.value))


@router.post("/track-click")
async def track_click(click: TrackClickRequest, tracker: Tracker = Depends(get_tracker)):
    """Record a click coming from the browser extension or the menu"""
    if not click.url or not click.url.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL is required")

    result = await tracker.links.record_click(
        click.storyId,
        click.title,
        click.url,
        points=click.points,
        comments=click.comments,
        kind=EventKind(click.clickType),
        source=click.source,
    )
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    return {"success": True, "id": result.value.id, "link_id": result.value.link_id}


@router.get("/links/{link_id}/tags")
async def get_link_tags(link_id: int, url: Optional[str] = None, tracker: Tracker = Depends(get_tracker)):
    return _ok(await tracker.tags.list_story_tags(link_id, url=url))


@router.post("/links/{link_id}/tags")
async def add_link_tag(link_id: int, update: TagUpdate, url: Optional[str] = None, tracker: Tracker = Depends(get_tracker)):
    result = await tracker.tags.add_tag(link_id, update.tag, url=url)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    return _ok(await tracker.tags.list_story_tags(link_id, url=url))


@router.delete("/links/{link_id}/tags/{tag}")
async def remove_link_tag(link_id: int, tag: str, url: Optional[str] = None, tracker: Tracker = Depends(get_tracker)):
    result = await tracker.tags.remove_tag(link_id, tag, url=url)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    return _ok(await tracker.tags.list_story_tags(link_id, url=url))


@router.post("/clear")
async def clear(tracker: Tracker = Depends(get_tracker)):
    """Delete everything (development only)"""
    if not config.is_development():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only available in development")
    result = await tracker.links.clear_all()
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    return {"success": True, "deleted": result.value}
