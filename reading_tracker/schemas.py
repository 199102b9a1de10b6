from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, Literal, Union

from reading_tracker.models import EventKind
from reading_tracker.tags import parse_tags


class LinkAppearance(BaseModel):
    """One link as handed over by a feed fetcher."""
    id: Union[int, str]
    title: Optional[str] = None
    url: str
    points: Optional[int] = 0
    comments: Optional[int] = 0
    source: Optional[str] = None

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        return v


class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source_native_id: Optional[str] = None
    source: Optional[str] = None
    title: Optional[str]
    url: str
    points: Optional[int] = 0
    comments: Optional[int] = 0
    tags: list[str] = []
    impression_count: int = 0
    first_seen_at: datetime
    last_seen_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v):
        if v is None or isinstance(v, str):
            return parse_tags(v)
        return v


class ClickedLinkResponse(LinkResponse):
    click_count: int = 0
    last_clicked_at: Optional[datetime] = None


class ClickEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    link_id: int
    kind: EventKind
    source: Optional[str]
    title: Optional[str]
    url: str
    points: Optional[int]
    comments: Optional[int]
    detail: Optional[str] = None
    link_first_seen_at: Optional[datetime]
    clicked_at: datetime


class TrackClickRequest(BaseModel):
    url: Optional[str] = None
    storyId: Optional[Union[int, str]] = None
    title: Optional[str] = None
    points: Optional[int] = None
    comments: Optional[int] = None
    source: Optional[str] = None
    clickType: Literal["article", "comments", "engagement"] = "article"


class TagUpdate(BaseModel):
    tag: str


class TagStat(BaseModel):
    tag: str
    story_count: int = 0
    viewed_count: int = 0
    engagement_count: int = 0
    avg_impressions: float = 0.0


class DailyCount(BaseModel):
    day: str  # YYYY-MM-DD
    count: int


class DashboardStats(BaseModel):
    total_links: int = 0
    total_clicks: int = 0
    viewed_links: int = 0
    tagged_links: int = 0
    untagged_links: int = 0
    unique_tags: int = 0
    click_rate: float = 0.0
    view_rate: float = 0.0
    tag_rate: float = 0.0
    sources: dict[str, int] = Field(default_factory=dict)
    daily_clicks: list[DailyCount] = Field(default_factory=list)


class ArticleCreate(BaseModel):
    """A page the browser extension asks to keep."""
    url: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    publish_date: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    text_content: Optional[str] = None
    word_count: Optional[int] = None
    reading_time: Optional[int] = None
    tags: Optional[str] = None
    notes: Optional[str] = None


class ArticleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    domain: Optional[str] = None
    author: Optional[str] = None
    publish_date: Optional[str] = None
    description: Optional[str] = None
    word_count: Optional[int] = None
    reading_time: Optional[int] = None
    tags: Optional[str] = None
    notes: Optional[str] = None
    click_count: int = 0
    saved_at: datetime
    last_clicked_at: Optional[datetime] = None


class ArticleStats(BaseModel):
    total_articles: int = 0
    total_words: int = 0
    avg_words: float = 0.0
    week_articles: int = 0
    month_articles: int = 0
