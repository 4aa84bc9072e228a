"""
Recent local headlines from the Google News RSS search feed.

Headlines are strictly best effort: every failure yields an empty list
wrapped in a soft outcome, never an exception.
"""
from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
import requests

from domain.models import HeadlineItem, Outcome
from settings import settings

PROVIDER = "google-news"
MAX_HEADLINES = 10
RECENCY_WINDOW = "7d"
DEFAULT_COUNTRY = "US"
USER_AGENT = "Mozilla/5.0"

logger = logging.getLogger(__name__)
_session = requests.Session()

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
# Applied in order; "&amp;" first so "&amp;lt;" ends up as "<".
_ENTITIES = (
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)


def clean_description(value: Optional[str]) -> Optional[str]:
    """Strip markup and decode common entities; None when too short to be useful."""
    if not value:
        return None
    text = _TAG_RE.sub(" ", value)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if len(text) < 3:
        return None
    return text


def as_item_list(value: Any) -> List[Any]:
    """Normalize a feed's item field to a list.

    Feeds may expose a single entry as a bare mapping rather than a
    one-element list; both shapes (and absence) are handled here, before
    any filtering.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return [value]
    return []


def build_query_params(name: str, country: Optional[str]) -> dict[str, str]:
    cc = (country or DEFAULT_COUNTRY).strip().upper() or DEFAULT_COUNTRY
    return {
        "q": f'"{name}" when:{RECENCY_WINDOW}',
        "hl": f"en-{cc}",
        "gl": cc,
        "ceid": f"{cc}:en",
    }


def _published_at(entry: Mapping) -> Optional[str]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    try:
        ts = calendar.timegm(parsed)
        dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def _source_name(entry: Mapping) -> Optional[str]:
    source = entry.get("source")
    if isinstance(source, Mapping):
        text = source.get("title") or source.get("value") or ""
    elif source:
        text = str(source)
    else:
        text = ""
    text = text.strip()
    return text or None


def entry_to_headline(entry: Mapping) -> HeadlineItem:
    return HeadlineItem(
        title=str(entry.get("title")),
        url=str(entry.get("link")),
        source=_source_name(entry),
        published_at=_published_at(entry),
        description=clean_description(entry.get("summary") or entry.get("description")),
    )


def parse_headlines(entries: Any) -> List[HeadlineItem]:
    items = [
        e for e in as_item_list(entries)
        if isinstance(e, Mapping) and e.get("title") and e.get("link")
    ]
    return [entry_to_headline(e) for e in items[:MAX_HEADLINES]]


class HeadlineFetcher:
    def __init__(
        self,
        feed_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.feed_url = feed_url or settings.NEWS_RSS_URL
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.session = session or _session

    def fetch(self, name: str, country: Optional[str] = None) -> Outcome:
        params = build_query_params(name, country)
        try:
            resp = self.session.get(
                self.feed_url,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("headline fetch failed for %r: %s", name, exc)
            return Outcome.soft([], str(exc), provider=PROVIDER)

        if not resp.ok:
            logger.warning("headline feed status %s for %r", resp.status_code, name)
            return Outcome.soft([], f"Feed status {resp.status_code}", provider=PROVIDER)

        parsed = feedparser.parse(resp.content)
        entries = parsed.get("entries")
        if parsed.get("bozo") and not entries:
            logger.warning(
                "headline feed for %r could not be parsed: %s", name, parsed.get("bozo_exception")
            )
            return Outcome.soft([], "Unparseable feed", provider=PROVIDER)

        headlines = parse_headlines(entries)
        logger.debug("headlines for %r (%s): %d items", name, params["gl"], len(headlines))
        return Outcome.ok(headlines)
