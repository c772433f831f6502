from __future__ import annotations

import calendar
import re
from datetime import datetime, timezone
from html import unescape
from typing import Any, Dict, Iterator, Union

import feedparser

from app.core.errors import FeedParseError
from app.models.news_public import NewsItem

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_RAW_URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_MAX_ITEMS = 50
SOURCE_PLACEHOLDER = "Fonte"

# Google News double-encodes (&amp;amp;) and sometimes worse; decode until stable.
_ENTITY_MAX_PASSES = 5


def decode_entities(value: str) -> str:
    """Decode named, decimal and hex character references."""
    text = value or ""
    for _ in range(_ENTITY_MAX_PASSES):
        decoded = unescape(text)
        if decoded == text:
            break
        text = decoded
    return text


def _collapse(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def clean_snippet(value: str) -> str:
    """Plain-text snippet: entities decoded, tags and bare URLs removed."""
    text = decode_entities(value)
    text = _HTML_TAG_RE.sub(" ", text)
    text = _RAW_URL_RE.sub(" ", text)
    return _collapse(text)


def _struct_time_to_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        timestamp = calendar.timegm(value)
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _extract_title(entry: Dict[str, Any]) -> str:
    title = entry.get("title")
    if isinstance(title, str):
        return _collapse(decode_entities(title))
    return ""


def _extract_url(entry: Dict[str, Any]) -> str:
    link = entry.get("link")
    if isinstance(link, str) and link.strip():
        return link.strip()
    return ""


def _extract_source(entry: Dict[str, Any]) -> tuple[str, str]:
    """
    <source url="https://g1.globo.com">g1</source> → ("g1", "https://g1.globo.com")
    """
    src = entry.get("source") or {}
    name, url = "", ""
    if isinstance(src, dict):
        title = src.get("title")
        if isinstance(title, str):
            name = _collapse(decode_entities(title))
        href = src.get("href") or src.get("url")
        if isinstance(href, str):
            url = href.strip()
    elif isinstance(src, str):
        name = _collapse(decode_entities(src))
    return name or SOURCE_PLACEHOLDER, url


def _extract_snippet(entry: Dict[str, Any]) -> str:
    summary = entry.get("summary") or entry.get("description")
    if isinstance(summary, str) and summary.strip():
        return clean_snippet(summary)
    return ""


def _extract_published_at(entry: Dict[str, Any]) -> datetime | None:
    return _struct_time_to_datetime(entry.get("published_parsed")) or _struct_time_to_datetime(
        entry.get("updated_parsed")
    )


def _normalize_entry(entry: Dict[str, Any]) -> NewsItem | None:
    title = _extract_title(entry)
    url = _extract_url(entry)
    if not title or not url:
        return None
    source, source_url = _extract_source(entry)
    return NewsItem(
        title=title,
        url=url,
        published_at=_extract_published_at(entry),
        source=source,
        snippet=_extract_snippet(entry),
        source_url=source_url,
    )


def iter_feed_items(feed_text: Union[str, bytes], *, limit: int = DEFAULT_MAX_ITEMS) -> Iterator[NewsItem]:
    """
    Lazily turn RSS/XML text into NewsItems, in feed order, at most ``limit``.

    Entries without a title or link are skipped. Calling again with the same
    text yields the same sequence. Raises FeedParseError (on first iteration)
    when the text is not a feed at all; an empty channel yields nothing.
    """
    # bytes, so feedparser never treats the body as a URL or file path
    raw = feed_text if isinstance(feed_text, bytes) else (feed_text or "").encode("utf-8")
    parsed = feedparser.parse(raw)
    entries = parsed.get("entries") or []
    if not entries and not parsed.get("version"):
        exc = parsed.get("bozo_exception")
        raise FeedParseError(
            "Feed RSS inválido.",
            details=str(exc) if exc else raw[:200].decode("utf-8", errors="replace"),
        )

    emitted = 0
    for entry in entries:
        if emitted >= limit:
            return
        item = _normalize_entry(entry)
        if item is None:
            continue
        emitted += 1
        yield item
