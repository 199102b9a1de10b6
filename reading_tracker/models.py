from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, Text
from sqlalchemy.sql import func
import enum
from reading_tracker.database import Base


class EventKind(str, enum.Enum):
    article = "article"        # opened the linked content
    comments = "comments"      # opened the discussion thread
    engagement = "engagement"  # tagged or otherwise curated the link


class Link(Base):
    """A distinct link, one row per URL, keyed by its normalized id."""
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, autoincrement=False)
    source_native_id = Column(String, nullable=True)
    source = Column(String, nullable=True, index=True)
    title = Column(String, nullable=True)
    url = Column(String, unique=True, nullable=False, index=True)
    points = Column(Integer, default=0)
    comments = Column(Integer, default=0)
    tags = Column(Text, nullable=True)  # comma-joined, lowercase
    impression_count = Column(Integer, default=1, nullable=False)
    first_seen_at = Column(DateTime, default=func.now(), nullable=False)
    last_seen_at = Column(DateTime, default=func.now(), nullable=False, index=True)


class ClickEvent(Base):
    """Append-only click/engagement record with the link's metadata at that moment."""
    __tablename__ = "click_events"

    id = Column(Integer, primary_key=True, index=True)
    # No FK: a click may arrive before the link's first appearance
    link_id = Column(Integer, nullable=False, index=True)
    kind = Column(SQLEnum(EventKind), default=EventKind.article, nullable=False, index=True)
    source = Column(String, nullable=True)
    title = Column(String, nullable=True)
    url = Column(String, nullable=False, index=True)
    points = Column(Integer, nullable=True)
    comments = Column(Integer, nullable=True)
    detail = Column(String, nullable=True)  # e.g. "add_tag:ai" for engagement
    link_first_seen_at = Column(DateTime, nullable=True)
    clicked_at = Column(DateTime, default=func.now(), nullable=False, index=True)

class LinkAlias(Base):
    """Another source's normalized id for a URL that is already stored under a different id."""
    __tablename__ = "link_aliases"

    alias_id = Column(Integer, primary_key=True, autoincrement=False)
    link_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)


class Article(Base):
    """A page saved from the browser extension for later reading."""
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String, unique=True, nullable=False, index=True)
    title = Column(String, nullable=False)
    domain = Column(String, nullable=True, index=True)
    author = Column(String, nullable=True)
    publish_date = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    text_content = Column(Text, nullable=True)
    word_count = Column(Integer, nullable=True)
    reading_time = Column(Integer, nullable=True)  # minutes
    tags = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    click_count = Column(Integer, default=0, nullable=False)
    saved_at = Column(DateTime, default=func.now(), nullable=False, index=True)
    last_clicked_at = Column(DateTime, nullable=True)
