from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Protocol
from urllib.parse import parse_qs, urlparse

import feedparser
import requests
from dateutil import parser as date_parser

from hnbrowse.models import Category, CommentNode, Item

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.hackerwebapp.com"
RSS_BASE = "https://hnrss.org"
HN_ITEM_URL = "https://news.ycombinator.com/item?id="

HACKERWEB_FEEDS: dict[Category, str] = {
    Category.FRONT_PAGE: "news",
    Category.NEW: "newest",
    Category.ASK: "ask",
    Category.SHOW: "show",
}
RSS_FEEDS: dict[Category, str] = {
    Category.FRONT_PAGE: "frontpage",
    Category.NEW: "newest",
    Category.ASK: "ask",
    Category.SHOW: "show",
}

POINTS_RE = re.compile(r"Points:\s*(\d+)")
COMMENTS_RE = re.compile(r"#\s*Comments:\s*(\d+)")


class FetchError(Exception):
    """Raised by an item source when stories or a thread cannot be loaded."""


class ItemSource(Protocol):
    synchronous: bool

    def fetch_stories(self, page: int, category: Category) -> list[Item]:
        ...

    def fetch_thread(self, item_id: int) -> CommentNode:
        ...


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def time_ago(published_at: datetime, now: datetime | None = None) -> str:
    delta = (now or now_utc()) - published_at
    seconds = max(int(delta.total_seconds()), 0)
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            plural = "" if count == 1 else "s"
            return f"{count} {unit}{plural} ago"
    return "just now"


def domain_of(url: str) -> str:
    host = urlparse(url).netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    if host == "news.ycombinator.com":
        return ""
    return host


class HackerWebSource:
    """Stories and threads from a node-hnapi compatible JSON service."""

    synchronous = False

    def __init__(self, base_url: str = DEFAULT_API_BASE, timeout_seconds: int = 20) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = requests.get(url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise FetchError(f"Request to {url} failed ({exc}).") from exc
        except ValueError as exc:
            raise FetchError(f"Invalid JSON from {url}.") from exc

    def fetch_stories(self, page: int, category: Category) -> list[Item]:
        payload = self._get_json(HACKERWEB_FEEDS[Category(category)], {"page": page + 1})
        if not isinstance(payload, list):
            raise FetchError("Unexpected story list payload.")
        items = [Item.from_payload(entry) for entry in payload if isinstance(entry, dict)]
        logger.info("Fetched %d stories for %s", len(items), Category(category).label)
        return items

    def fetch_thread(self, item_id: int) -> CommentNode:
        payload = self._get_json(f"item/{item_id}")
        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected payload for item {item_id}.")
        return CommentNode.from_payload(payload)


def _entry_id(entry: Any) -> int:
    comments_url = entry.get("comments", "") or entry.get("id", "")
    values = parse_qs(urlparse(comments_url).query).get("id", [])
    try:
        return int(values[0]) if values else 0
    except ValueError:
        return 0


def _entry_age(entry: Any) -> str:
    raw = entry.get("published") or entry.get("updated")
    if not raw:
        return ""
    try:
        published = date_parser.parse(str(raw))
    except (TypeError, ValueError, OverflowError):
        return ""
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return time_ago(published.astimezone(timezone.utc))


def item_from_entry(entry: Any) -> Item:
    summary = entry.get("summary", "") or ""
    points = POINTS_RE.search(summary)
    comments = COMMENTS_RE.search(summary)
    url = entry.get("link", "")
    return Item(
        id=_entry_id(entry),
        title=entry.get("title", ""),
        author=entry.get("author", ""),
        points=int(points.group(1)) if points else 0,
        comments_count=int(comments.group(1)) if comments else 0,
        time_ago=_entry_age(entry),
        url=url,
        domain=domain_of(url),
    )


class RssSource:
    """Story lists from hnrss.org; threads come from ``thread_source``."""

    synchronous = False

    def __init__(
        self,
        thread_source: HackerWebSource | None = None,
        base_url: str = RSS_BASE,
        count: int = 30,
    ) -> None:
        self.thread_source = thread_source or HackerWebSource()
        self.base_url = base_url.rstrip("/")
        self.count = count

    def fetch_stories(self, page: int, category: Category) -> list[Item]:
        feed_url = f"{self.base_url}/{RSS_FEEDS[Category(category)]}?count={self.count}"
        parsed = feedparser.parse(feed_url)
        if parsed.bozo and not parsed.entries:
            raise FetchError(f"Feed {feed_url} unavailable ({parsed.get('bozo_exception')}).")
        return [item_from_entry(entry) for entry in parsed.entries]

    def fetch_thread(self, item_id: int) -> CommentNode:
        return self.thread_source.fetch_thread(item_id)


class MockSource:
    """Deterministic offline data for --debug and tests."""

    synchronous = True

    def __init__(self, stories_per_category: int = 30) -> None:
        self.stories_per_category = stories_per_category

    def fetch_stories(self, page: int, category: Category) -> list[Item]:
        category = Category(category)
        items: list[Item] = []
        for n in range(self.stories_per_category):
            item_id = (int(category) + 1) * 1000 + n
            prefix = {Category.ASK: "Ask HN: ", Category.SHOW: "Show HN: "}.get(category, "")
            domain = "" if category == Category.ASK else f"example{n % 7}.com"
            items.append(
                Item(
                    id=item_id,
                    title=f"{prefix}{category.label.title()} story number {n + 1}",
                    author=f"user{n % 11}",
                    points=(n * 37) % 500,
                    comments_count=(n * 13) % 200,
                    time_ago=f"{n + 1} hours ago",
                    url=f"https://{domain}/post/{item_id}" if domain else f"{HN_ITEM_URL}{item_id}",
                    domain=domain,
                )
            )
        return items

    def fetch_thread(self, item_id: int) -> CommentNode:
        return CommentNode(
            id=item_id,
            author="op_user",
            content="",
            time_ago="5 hours ago",
            comments_count=4,
            points=128,
            url=f"https://example.com/post/{item_id}",
            domain="example.com",
            title=f"Mock story {item_id}",
            replies=(
                CommentNode(
                    id=item_id + 1,
                    author="dang",
                    content="<p>Please keep it civil &amp; on topic.",
                    time_ago="4 hours ago",
                    replies=(
                        CommentNode(
                            id=item_id + 2,
                            author="op_user",
                            content="Sure, it&#x27;s <i>fine</i>.",
                            time_ago="3 hours ago",
                        ),
                    ),
                ),
                CommentNode(
                    id=item_id + 3,
                    author="someone",
                    content='See <a href="https:&#x2F;&#x2F;example.com" rel="nofollow">'
                    "https:&#x2F;&#x2F;example.com</a>",
                    time_ago="2 hours ago",
                ),
            ),
        )


def build_source(name: str, api_base: str = DEFAULT_API_BASE, timeout_seconds: int = 20) -> ItemSource:
    if name == "mock":
        return MockSource()
    hackerweb = HackerWebSource(api_base, timeout_seconds)
    if name == "rss":
        return RssSource(thread_source=hackerweb)
    if name == "hackerweb":
        return hackerweb
    raise ValueError(f"Unknown source '{name}'. Valid sources: hackerweb, rss, mock")
