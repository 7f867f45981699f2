from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class Category(IntEnum):
    FRONT_PAGE = 0
    NEW = 1
    ASK = 2
    SHOW = 3

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS: dict[Category, str] = {
    Category.FRONT_PAGE: "top",
    Category.NEW: "new",
    Category.ASK: "ask",
    Category.SHOW: "show",
}
NUMBER_OF_CATEGORIES = len(Category)


def _as_int(raw: Any) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def _as_str(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw)


@dataclass(frozen=True)
class Item:
    id: int
    title: str
    author: str
    points: int
    comments_count: int
    time_ago: str
    url: str
    domain: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Item:
        return cls(
            id=_as_int(payload.get("id")),
            title=_as_str(payload.get("title")),
            author=_as_str(payload.get("user")),
            points=_as_int(payload.get("points")),
            comments_count=_as_int(payload.get("comments_count")),
            time_ago=_as_str(payload.get("time_ago")),
            url=_as_str(payload.get("url")),
            domain=_as_str(payload.get("domain")),
        )


@dataclass(frozen=True)
class CommentNode:
    """One node of a comment thread.

    The thread root carries the story fields (title, url, domain, points)
    and the story self-text in ``content``; replies carry the comment body.
    """

    id: int
    author: str
    content: str
    time_ago: str
    comments_count: int = 0
    points: int = 0
    url: str = ""
    domain: str = ""
    title: str = ""
    replies: tuple[CommentNode, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> CommentNode:
        return cls(
            id=_as_int(payload.get("id")),
            author=_as_str(payload.get("user")),
            content=_as_str(payload.get("content")),
            time_ago=_as_str(payload.get("time_ago")),
            comments_count=_as_int(payload.get("comments_count")),
            points=_as_int(payload.get("points")),
            url=_as_str(payload.get("url")),
            domain=_as_str(payload.get("domain")),
            title=_as_str(payload.get("title")),
            replies=tuple(
                cls.from_payload(child)
                for child in payload.get("comments") or []
                if isinstance(child, dict)
            ),
        )
