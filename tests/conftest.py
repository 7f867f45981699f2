"""Shared fixtures and fakes for the list engine and formatter tests."""
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from hnbrowse.list_engine import ListEngine
from hnbrowse.models import Category, CommentNode, Item
from hnbrowse.sources import FetchError


def make_item(n: int, domain: str = "example.com") -> Item:
    return Item(
        id=n,
        title=f"Story {n}",
        author="alice",
        points=n,
        comments_count=n % 5,
        time_ago="1 hour ago",
        url=f"https://{domain}/{n}" if domain else "",
        domain=domain,
    )


def make_items(count: int) -> list[Item]:
    return [make_item(n) for n in range(count)]


def make_node(author: str, content: str = "", replies=(), time_ago: str = "1 hour ago") -> CommentNode:
    return CommentNode(id=0, author=author, content=content, time_ago=time_ago, replies=tuple(replies))


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """Records fetches; returns ``per_category`` items or raises ``error``."""

    def __init__(self, synchronous: bool = True, per_category: int = 12, error: str = "") -> None:
        self.synchronous = synchronous
        self.per_category = per_category
        self.error = error
        self.calls: list[tuple[int, Category]] = []

    def fetch_stories(self, page: int, category: Category) -> list[Item]:
        self.calls.append((page, category))
        if self.error:
            raise FetchError(self.error)
        base = int(category) * 100
        return [make_item(base + n) for n in range(self.per_category)]

    def fetch_thread(self, item_id: int) -> CommentNode:
        if self.error:
            raise FetchError(self.error)
        return CommentNode(id=item_id, author="op", content="", time_ago="now", title="T", domain="d.com", url="https://d.com")


class FixedDelegate:
    """Renders exactly ``rows`` lines per item."""

    def __init__(self, rows: int = 1, gap: int = 0) -> None:
        self.rows = rows
        self.gap = gap
        self.keys: list[str] = []

    def height(self) -> int:
        return self.rows

    def spacing(self) -> int:
        return self.gap

    def render(self, engine, index, item) -> str:
        return "\n".join([f"<row {index}>"] + ["."] * (self.rows - 1))

    def update(self, key, engine) -> None:
        self.keys.append(key)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def engine(source, clock):
    """80x13 viewport: 2 title rows + 1 status row leaves 10 one-line rows."""
    list_engine = ListEngine(FixedDelegate(), source, width=80, height=13, clock=clock)
    list_engine.input_disabled = False
    return list_engine
