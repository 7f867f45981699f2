from __future__ import annotations

import logging
import os
import queue
import select
import sys
import termios
import threading
import time
import tty
from dataclasses import dataclass, field
from typing import Any, Callable

from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.text import Text

from hnbrowse.ansi import bel_links_to_st
from hnbrowse.comments import format_thread
from hnbrowse.config import AppConfig, configure_logging, parse_args
from hnbrowse.delegates import CompactDelegate, StoryDelegate
from hnbrowse.list_engine import FetchFinished, ListEngine
from hnbrowse.models import CommentNode, Item
from hnbrowse.sources import FetchError, ItemSource, build_source
from hnbrowse.terminal import ConsoleMetrics

logger = logging.getLogger(__name__)

THREAD_SCROLL_PAGE = 10
LOOP_SLEEP_SECONDS = 0.05

Event = tuple[str, Any]


@dataclass
class ThreadLoaded:
    item_id: int
    thread: CommentNode | None = None
    error: str = ""


@dataclass
class ViewState:
    mode: str = "list"
    thread_lines: list[Text] = field(default_factory=list)
    thread_scroll: int = 0
    thread_pending: bool = False


def thread_command(source: ItemSource, item_id: int) -> Callable[[], ThreadLoaded]:
    def command() -> ThreadLoaded:
        try:
            return ThreadLoaded(item_id, source.fetch_thread(item_id))
        except FetchError as exc:
            logger.warning("Loading thread %s failed: %s", item_id, exc)
            return ThreadLoaded(item_id, None, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error loading thread %s", item_id)
            return ThreadLoaded(item_id, None, f"Loading thread {item_id} failed: {exc}")

    return command


def run_deferred(
    command: Callable[[], Any],
    event_type: str,
    event_queue: queue.Queue[Event],
) -> threading.Thread:
    """Run ``command`` on a worker and post its result back to the loop."""

    def worker() -> None:
        event_queue.put((event_type, command()))

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    return thread


def render_thread(thread: CommentNode, config: AppConfig, width: int) -> str:
    return format_thread(
        thread,
        width,
        indent_size=config.indent_size,
        comment_width=config.comment_width,
    )


def to_rich_text(rendered: str) -> Text:
    return Text.from_ansi(bel_links_to_st(rendered))


def build_screen(engine: ListEngine, state: ViewState, height: int) -> Text:
    if state.mode == "thread":
        visible = state.thread_lines[state.thread_scroll : state.thread_scroll + max(1, height)]
        return Text("\n").join(visible)
    return to_rich_text(engine.view())


def clamp_scroll(state: ViewState, height: int) -> None:
    max_scroll = max(0, len(state.thread_lines) - max(1, height))
    state.thread_scroll = max(0, min(state.thread_scroll, max_scroll))


def handle_thread_key(state: ViewState, key: str, height: int) -> None:
    if key in {"q", "ESC"}:
        state.mode = "list"
        state.thread_lines = []
        state.thread_scroll = 0
        return
    if key in {"j", "DOWN"}:
        state.thread_scroll += 1
    elif key in {"k", "UP"}:
        state.thread_scroll -= 1
    elif key in {"PGDN", " "}:
        state.thread_scroll += THREAD_SCROLL_PAGE
    elif key == "PGUP":
        state.thread_scroll -= THREAD_SCROLL_PAGE
    elif key in {"g", "HOME"}:
        state.thread_scroll = 0
    elif key in {"G", "END"}:
        state.thread_scroll = len(state.thread_lines)
    clamp_scroll(state, height)


def handle_list_key(
    engine: ListEngine,
    state: ViewState,
    key: str,
    event_queue: queue.Queue[Event],
) -> bool:
    """Apply a key in list mode. Returns True when quitting."""
    if key == "q":
        return True
    if engine.input_disabled or state.thread_pending:
        return False

    if key == "ENTER":
        item: Item | None = engine.selected_item()
        if item is None:
            engine.new_status_message("No stories available.")
            return False
        state.thread_pending = True
        engine.start_spinner()
        run_deferred(thread_command(engine.source, item.id), "thread", event_queue)
        return False

    command = engine.handle_key(key)
    if command is not None:
        run_deferred(command, "fetch", event_queue)
    return False


def handle_thread_loaded(
    engine: ListEngine,
    state: ViewState,
    result: ThreadLoaded,
    config: AppConfig,
    width: int,
) -> None:
    state.thread_pending = False
    engine.stop_spinner()
    if result.thread is None:
        engine.new_status_message(result.error or "Thread unavailable.", 5.0)
        return
    state.mode = "thread"
    rendered = to_rich_text(render_thread(result.thread, config, width))
    state.thread_lines = list(rendered.split("\n", allow_blank=True))
    state.thread_scroll = 0


def _line_input_worker(
    event_queue: queue.Queue[Event],
    stop_event: threading.Event,
) -> None:
    while not stop_event.is_set():
        try:
            line = sys.stdin.readline()
        except (OSError, ValueError):
            if stop_event.wait(0.2):
                break
            continue
        if line == "":
            if stop_event.wait(0.2):
                break
            continue
        key = line.strip() or "ENTER"
        event_queue.put(("key", key))


ESCAPE_KEYS = {
    "[A": "UP",
    "[B": "DOWN",
    "[C": "RIGHT",
    "[D": "LEFT",
    "[H": "HOME",
    "[F": "END",
    "[Z": "SHTAB",
    "[5~": "PGUP",
    "[6~": "PGDN",
}


def command_input_worker(
    event_queue: queue.Queue[Event],
    stop_event: threading.Event,
) -> None:
    if not sys.stdin.isatty():
        _line_input_worker(event_queue, stop_event)
        return

    try:
        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
    except (OSError, termios.error, ValueError):
        _line_input_worker(event_queue, stop_event)
        return

    try:
        tty.setcbreak(fd)
        while not stop_event.is_set():
            ready, _, _ = select.select([fd], [], [], 0.2)
            if not ready:
                continue
            data = os.read(fd, 1)
            if not data:
                continue
            key = data.decode("utf-8", errors="ignore")
            if not key:
                continue
            if key in {"\r", "\n"}:
                event_queue.put(("key", "ENTER"))
                continue
            if key == "\t":
                event_queue.put(("key", "TAB"))
                continue
            if key == "\x1b":
                sequence = ""
                while select.select([fd], [], [], 0.001)[0]:
                    sequence += os.read(fd, 1).decode("utf-8", errors="ignore")
                    if not sequence:
                        continue
                    if sequence[-1].isalpha() or sequence.endswith("~") or len(sequence) >= 6:
                        break
                event_queue.put(("key", ESCAPE_KEYS.get(sequence, "ESC")))
                continue
            if key == "\x03":
                event_queue.put(("key", "QUIT"))
                continue
            event_queue.put(("key", key))
    finally:
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        except termios.error:
            pass


def build_engine(config: AppConfig, source: ItemSource, console: Console) -> ListEngine:
    delegate = CompactDelegate() if config.compact else StoryDelegate()
    return ListEngine(
        delegate,
        source,
        width=console.size.width,
        height=console.size.height,
        metrics=ConsoleMetrics(console),
        status_lifetime=config.status_seconds,
        shuffle_fresh_categories=config.shuffle,
    )


def run_once(config: AppConfig, source: ItemSource, console: Console) -> int:
    if config.thread_id is not None:
        result = thread_command(source, config.thread_id)()
        if result.thread is None:
            console.print(f"[red]Could not load thread:[/red] {result.error}")
            return 1
        console.print(to_rich_text(render_thread(result.thread, config, console.size.width)))
        return 0

    engine = build_engine(config, source, console)
    engine.handle_fetch_finished(engine.fetch_front_page()())
    console.print(to_rich_text(engine.view()))
    return 0


def run(config: AppConfig, console: Console) -> int:
    source = build_source(config.source, config.api_base, config.timeout_seconds)
    if config.once or config.thread_id is not None:
        return run_once(config, source, console)

    engine = build_engine(config, source, console)
    state = ViewState()
    stop_event = threading.Event()
    event_queue: queue.Queue[Event] = queue.Queue()

    run_deferred(engine.fetch_front_page(), "fetch", event_queue)
    command_worker = threading.Thread(
        target=command_input_worker,
        args=(event_queue, stop_event),
        daemon=True,
    )
    command_worker.start()

    with Live(
        build_screen(engine, state, console.size.height),
        console=console,
        refresh_per_second=10,
        screen=True,
        vertical_overflow="crop",
    ) as live:
        try:
            while True:
                exit_requested = False
                width, height = console.size.width, console.size.height
                if (width, height) != (engine.width, engine.height):
                    engine.set_size(width, height)

                while True:
                    try:
                        event_type, event_value = event_queue.get_nowait()
                    except queue.Empty:
                        break
                    if event_type == "fetch":
                        engine.handle_fetch_finished(event_value)
                    elif event_type == "thread":
                        handle_thread_loaded(engine, state, event_value, config, width)
                    elif event_type == "key":
                        if event_value == "QUIT":
                            exit_requested = True
                            break
                        if state.mode == "thread":
                            handle_thread_key(state, event_value, height)
                        elif handle_list_key(engine, state, event_value, event_queue):
                            exit_requested = True
                            break
                if exit_requested:
                    return 0

                engine.tick()
                live.update(build_screen(engine, state, height))
                time.sleep(LOOP_SLEEP_SECONDS)
        finally:
            stop_event.set()
            command_worker.join(timeout=2)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    console = Console()
    try:
        config = parse_args(argv if argv is not None else sys.argv[1:])
    except ValueError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2

    configure_logging(config.log_file, config.debug)
    try:
        return run(config, console)
    except KeyboardInterrupt:
        console.print("\n[bold]Stopped.[/bold]")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
