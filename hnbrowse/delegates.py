from __future__ import annotations

import subprocess
import sys
import webbrowser
from typing import TYPE_CHECKING

from hnbrowse.ansi import BOLD, DIMMED, MAGENTA, NORMAL, fit, truncate
from hnbrowse.models import Item
from hnbrowse.sources import HN_ITEM_URL

if TYPE_CHECKING:
    from hnbrowse.list_engine import ListEngine

RANK_WIDTH = 5


def open_link(url: str) -> str:
    clean_url = url.strip()
    if not clean_url:
        return "No URL available for selected story."
    try:
        if sys.platform == "darwin":
            subprocess.Popen(["open", clean_url], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        else:
            webbrowser.open(clean_url, new=2)
        return ""
    except (OSError, webbrowser.Error) as exc:
        return f"Failed to open link: {exc}"


def item_link(item: Item) -> str:
    return item.url or f"{HN_ITEM_URL}{item.id}"


class StoryDelegate:
    """Two rows per story: ranked title, then points/author/age/comments."""

    def height(self) -> int:
        return 2

    def spacing(self) -> int:
        return 1

    def render(self, engine: ListEngine, index: int, item: Item) -> str:
        selected = index == engine.index
        rank = f"{index + 1}.".rjust(RANK_WIDTH - 1) + " "
        domain = f" ({item.domain})" if item.domain else ""
        title_width = max(1, engine.width - RANK_WIDTH - len(domain))
        title = truncate(item.title, title_width)
        title_style = f"{BOLD}{MAGENTA}" if selected else BOLD

        meta = (
            f"{item.points} points by {item.author} {item.time_ago}"
            f" | {item.comments_count} comments"
        )
        first = f"{DIMMED}{rank}{NORMAL}{title_style}{title}{NORMAL}{DIMMED}{domain}{NORMAL}"
        second = " " * RANK_WIDTH + f"{DIMMED}{truncate(meta, max(1, engine.width - RANK_WIDTH))}{NORMAL}"
        return f"{fit(first, engine.width)}\n{fit(second, engine.width)}"

    def update(self, key: str, engine: ListEngine) -> None:
        if key != "o":
            return
        item = engine.selected_item()
        if item is None:
            engine.new_status_message("No stories available to open.")
            return
        error = open_link(item_link(item))
        engine.new_status_message(error or f"Opened {item.domain or 'discussion'}")


class CompactDelegate(StoryDelegate):
    """One row per story with points and comment count inline."""

    def height(self) -> int:
        return 1

    def spacing(self) -> int:
        return 0

    def render(self, engine: ListEngine, index: int, item: Item) -> str:
        selected = index == engine.index
        rank = f"{index + 1}.".rjust(RANK_WIDTH - 1) + " "
        counts = f" [{item.points}|{item.comments_count}]"
        title = truncate(item.title, max(1, engine.width - RANK_WIDTH - len(counts)))
        title_style = f"{BOLD}{MAGENTA}" if selected else ""
        row = f"{DIMMED}{rank}{NORMAL}{title_style}{title}{NORMAL}{DIMMED}{counts}{NORMAL}"
        return fit(row, engine.width)
