from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from hnbrowse.ansi import BOLD, DIMMED, NORMAL, REVERSE, fit, pad_visible
from hnbrowse.models import NUMBER_OF_CATEGORIES, Category, Item
from hnbrowse.sources import FetchError, ItemSource
from hnbrowse.terminal import TerminalMetrics

logger = logging.getLogger(__name__)

NO_ITEMS = "No items."
SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
ERROR_STATUS_SECONDS = 5.0
STATUS_SIDE_WIDTH = 5

KEYMAP: dict[str, frozenset[str]] = {
    "cursor_up": frozenset({"k", "UP"}),
    "cursor_down": frozenset({"j", "DOWN"}),
    "prev_page": frozenset({"h", "LEFT", "PGUP"}),
    "next_page": frozenset({"l", "RIGHT", "PGDN"}),
    "next_category": frozenset({"TAB"}),
    "previous_category": frozenset({"SHTAB"}),
    "go_to_start": frozenset({"g", "HOME"}),
    "go_to_end": frozenset({"G", "END"}),
}


@dataclass
class FetchFinished:
    category: Category
    items: list[Item] = field(default_factory=list)
    error: str = ""


FetchCommand = Callable[[], FetchFinished]


class ItemDelegate(Protocol):
    def render(self, engine: ListEngine, index: int, item: Item) -> str:
        ...

    def height(self) -> int:
        ...

    def spacing(self) -> int:
        ...

    def update(self, key: str, engine: ListEngine) -> None:
        ...


def height_of(text: str) -> int:
    return text.count("\n") + 1


class Paginator:
    def __init__(self) -> None:
        self.page = 0
        self.per_page = 1
        self.total_pages = 1

    def set_total_pages(self, item_count: int) -> int:
        self.total_pages = max(1, math.ceil(item_count / self.per_page))
        return self.total_pages

    def slice_bounds(self, item_count: int) -> tuple[int, int]:
        start = self.page * self.per_page
        end = min(start + self.per_page, item_count)
        return min(start, end), end

    def items_on_page(self, item_count: int) -> int:
        if item_count < 1:
            return 0
        start, end = self.slice_bounds(item_count)
        return end - start

    def on_first_page(self) -> bool:
        return self.page == 0

    def on_last_page(self) -> bool:
        return self.page >= self.total_pages - 1

    def prev_page(self) -> None:
        if not self.on_first_page():
            self.page -= 1

    def next_page(self) -> None:
        if not self.on_last_page():
            self.page += 1

    def view(self) -> str:
        if self.total_pages > STATUS_SIDE_WIDTH:
            return f"{self.page + 1}/{self.total_pages}"
        return "".join("•" if page == self.page else "○" for page in range(self.total_pages))


class ListEngine:
    """Paged story list with one buffer per category.

    All mutation happens on the caller's loop. Fetches for live sources are
    handed back as commands; the caller runs them elsewhere and passes the
    result to ``handle_fetch_finished``.
    """

    def __init__(
        self,
        delegate: ItemDelegate,
        source: ItemSource,
        width: int = 0,
        height: int = 0,
        metrics: TerminalMetrics | None = None,
        status_lifetime: float = 1.0,
        shuffle_fresh_categories: bool = False,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.title = "Hacker News"
        self.show_title = True
        self.show_status_bar = True
        self.input_disabled = True
        self.on_startup = True
        self.status_lifetime = status_lifetime
        self.status_message = ""
        self.show_spinner = False
        self.shuffle_fresh_categories = shuffle_fresh_categories
        self.width = width
        self.height = height
        self.category = Category.FRONT_PAGE
        self.paginator = Paginator()
        self.delegate = delegate
        self.source = source
        self.metrics = metrics
        self.clock = clock
        self.rng = rng or random.Random()
        self._cursor = 0
        self._status_deadline: float | None = None
        self._items: list[list[Item]] = [[] for _ in range(NUMBER_OF_CATEGORIES)]
        self.update_pagination()

    # selection

    @property
    def items(self) -> list[Item]:
        return self._items[self.category]

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def index(self) -> int:
        return self.paginator.page * self.paginator.per_page + self._cursor

    def items_for(self, category: Category) -> list[Item]:
        return self._items[category]

    def select(self, index: int) -> None:
        self.paginator.page = index // self.paginator.per_page
        self._cursor = index % self.paginator.per_page

    def selected_item(self) -> Item | None:
        index = self.index
        items = self.items
        if index < 0 or index >= len(items):
            return None
        return items[index]

    def set_items(self, items: list[Item]) -> None:
        self._items[self.category] = list(items)
        self.update_pagination()

    def set_delegate(self, delegate: ItemDelegate) -> None:
        self.delegate = delegate
        self.update_pagination()

    # chrome and viewport

    def set_show_title(self, value: bool) -> None:
        self.show_title = value
        self.update_pagination()

    def set_show_status_bar(self, value: bool) -> None:
        self.show_status_bar = value
        self.update_pagination()

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.update_pagination()

    def available_height(self) -> int:
        available = self.height
        if self.show_title:
            available -= height_of(self.title_view())
        if self.show_status_bar:
            available -= height_of(self.status_view())
        return max(1, available)

    def update_pagination(self) -> None:
        index = self.index
        row_height = max(1, self.delegate.height() + self.delegate.spacing())

        self.paginator.per_page = max(1, self.available_height() // row_height)
        self.paginator.set_total_pages(len(self.items))

        self.paginator.page = index // self.paginator.per_page
        self._cursor = index % self.paginator.per_page

        if self.paginator.page >= self.paginator.total_pages:
            self.paginator.page = max(0, self.paginator.total_pages - 1)
        self._clamp_cursor()

    def _clamp_cursor(self) -> None:
        items_on_page = self.paginator.items_on_page(len(self.items))
        if self._cursor > items_on_page - 1:
            self._cursor = max(0, items_on_page - 1)
        if self._cursor < 0:
            self._cursor = 0

    # navigation

    def cursor_up(self) -> None:
        self._cursor = max(0, self._cursor - 1)

    def cursor_down(self) -> None:
        items_on_page = self.paginator.items_on_page(len(self.items))
        self._cursor += 1
        if self._cursor >= items_on_page:
            self._cursor = max(0, items_on_page - 1)

    def prev_page(self) -> None:
        self.paginator.prev_page()
        self._clamp_cursor()

    def next_page(self) -> None:
        self.paginator.next_page()
        self._clamp_cursor()

    def go_to_start(self) -> None:
        self.paginator.page = 0
        self._cursor = 0

    def go_to_end(self) -> None:
        self.paginator.page = self.paginator.total_pages - 1
        self._cursor = max(0, self.paginator.items_on_page(len(self.items)) - 1)

    def next_category(self) -> FetchCommand | None:
        return self.select_category(Category((self.category + 1) % NUMBER_OF_CATEGORIES))

    def previous_category(self) -> FetchCommand | None:
        return self.select_category(Category((self.category - 1) % NUMBER_OF_CATEGORIES))

    def select_category(self, category: Category) -> FetchCommand | None:
        self.category = Category(category)
        self.paginator.page = 0
        self._cursor = 0

        if self._items[self.category]:
            self.update_pagination()
            return None

        if self.source.synchronous:
            result = self.fetch_command(self.category)()
            self.handle_fetch_finished(result)
            return None

        self.update_pagination()
        return self.fetch_command(self.category)

    # fetching

    def fetch_front_page(self) -> FetchCommand:
        return self.fetch_command(Category.FRONT_PAGE)

    def fetch_command(self, category: Category, page: int = 0) -> FetchCommand:
        self.input_disabled = True
        self.start_spinner()
        source = self.source

        def command() -> FetchFinished:
            try:
                return FetchFinished(category, source.fetch_stories(page, category))
            except FetchError as exc:
                logger.warning("Fetching %s failed: %s", category.label, exc)
                return FetchFinished(category, [], str(exc))
            except Exception as exc:
                logger.exception("Unexpected error fetching %s", category.label)
                return FetchFinished(category, [], f"Fetching {category.label} failed: {exc}")

        return command

    def handle_fetch_finished(self, result: FetchFinished) -> None:
        self.stop_spinner()
        if result.error:
            self.new_status_message(result.error, ERROR_STATUS_SECONDS)
        else:
            stories = list(result.items)
            if self.shuffle_fresh_categories and result.category != Category.FRONT_PAGE:
                self.rng.shuffle(stories)
            self._items[result.category] = stories

        if self.metrics is not None:
            self.set_size(self.metrics.width(), self.metrics.height())
        else:
            self.update_pagination()
        self.input_disabled = False
        self.on_startup = False

    def handle_key(self, key: str) -> FetchCommand | None:
        if self.input_disabled:
            return None

        command = None
        if key in KEYMAP["cursor_up"]:
            self.cursor_up()
        elif key in KEYMAP["cursor_down"]:
            self.cursor_down()
        elif key in KEYMAP["prev_page"]:
            self.prev_page()
        elif key in KEYMAP["next_page"]:
            self.next_page()
        elif key in KEYMAP["next_category"]:
            command = self.next_category()
        elif key in KEYMAP["previous_category"]:
            command = self.previous_category()
        elif key in KEYMAP["go_to_start"]:
            self.go_to_start()
        elif key in KEYMAP["go_to_end"]:
            self.go_to_end()

        self.delegate.update(key, self)
        self._clamp_cursor()
        return command

    # status and spinner

    def new_status_message(self, text: str, duration: float | None = None) -> None:
        if duration is None:
            duration = self.status_lifetime
        self.status_message = text
        self._status_deadline = self.clock() + max(0.0, duration)

    def hide_status_message(self) -> None:
        self.status_message = ""
        self._status_deadline = None

    def tick(self) -> bool:
        """Clear the status message once its deadline has passed."""
        if self._status_deadline is None or self.clock() < self._status_deadline:
            return False
        self.hide_status_message()
        return True

    def start_spinner(self) -> None:
        self.show_spinner = True

    def stop_spinner(self) -> None:
        self.show_spinner = False

    def spinner_view(self) -> str:
        frame = SPINNER_FRAMES[int(self.clock() * 10) % len(SPINNER_FRAMES)]
        return f"{frame} fetching"

    # rendering

    def title_view(self) -> str:
        labels = []
        for category in Category:
            if category == self.category:
                labels.append(f"{BOLD}{category.label}{NORMAL}")
            else:
                labels.append(f"{DIMMED}{category.label}{NORMAL}")
        header = f"{REVERSE}{BOLD} Y {NORMAL} {BOLD}{self.title}{NORMAL}  " + " | ".join(labels)
        return pad_visible(fit(header, self.width), self.width) + "\n"

    def status_view(self) -> str:
        center = self.spinner_view() if self.show_spinner else self.status_message
        center_width = max(0, self.width - 2 * STATUS_SIDE_WIDTH)
        left = " " * STATUS_SIDE_WIDTH
        right = pad_visible(self.paginator.view(), STATUS_SIDE_WIDTH, "center")
        line = left + pad_visible(fit(center, center_width), center_width, "center") + right
        return fit(line, self.width)

    def populated_view(self) -> str:
        items = self.items
        row_height = self.delegate.height()
        spacing = self.delegate.spacing()
        per_page = self.paginator.per_page

        if not items:
            padding = per_page * row_height + (per_page - 1) * spacing - 1
            return f"{DIMMED}{NO_ITEMS}{NORMAL}" + "\n" * max(0, padding)

        start, end = self.paginator.slice_bounds(len(items))
        rows = [
            self.delegate.render(self, start + offset, item)
            for offset, item in enumerate(items[start:end])
        ]
        body = ("\n" * (spacing + 1)).join(rows)

        items_on_page = end - start
        if items_on_page < per_page:
            body += "\n" * ((per_page - items_on_page) * (row_height + spacing))
        return body

    def view(self) -> str:
        sections = []
        if self.show_title:
            sections.append(self.title_view())
        sections.append(self.populated_view())
        if self.show_status_bar:
            sections.append(self.status_view())
        return "\n".join(sections)
