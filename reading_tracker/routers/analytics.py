# reading_tracker/routers/analytics.py
"""Tag and click statistics."""
from fastapi import APIRouter, Depends
from typing import Optional

from reading_tracker.models import EventKind
from reading_tracker.schemas import ClickEventResponse
from reading_tracker.tracker import Tracker, get_tracker

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/tag-stats")
async def tag_stats(tracker: Tracker = Depends(get_tracker)):
    return {"success": True, "data": await tracker.queries.tag_statistics()}


@router.get("/dashboard")
async def dashboard(days: int = 30, tracker: Tracker = Depends(get_tracker)):
    return {"success": True, "data": await tracker.queries.dashboard_stats(days=days)}


@router.get("/daily-clicks")
async def daily_clicks(days: int = 30, kind: EventKind = EventKind.article, tracker: Tracker = Depends(get_tracker)):
    return {"success": True, "data": await tracker.events.daily_counts(days=days, kind=kind)}


@router.get("/events")
async def events(limit: int = 50, kind: Optional[EventKind] = None, tracker: Tracker = Depends(get_tracker)):
    """Most recent click/engagement events"""
    rows = await tracker.events.recent_events(limit=limit, kind=kind)
    return {"success": True, "data": [ClickEventResponse.model_validate(row) for row in rows]}
