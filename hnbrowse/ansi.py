from __future__ import annotations

import re

from rich.cells import cell_len

NORMAL = "\033[0m"
BOLD = "\033[1m"
DIMMED = "\033[2m"
ITALIC = "\033[3m"
REVERSE = "\033[7m"
GREEN = "\033[32m"
RED = "\033[31m"
MAGENTA = "\033[35m"

LINK_OPEN = "\033]8;;"
LINK_SEPARATOR = "\a"
LINK_CLOSE = "\033]8;;\a"

ESCAPE_RE = re.compile(r"\x1b\]8;;.*?(?:\x07|\x1b\\)|\x1b\[[0-9;?]*[A-Za-z]")
BEL_LINK_RE = re.compile(r"\x1b\]8;;(.*?)\x07")


def hyperlink(url: str, text: str) -> str:
    return f"{LINK_OPEN}{url}{LINK_SEPARATOR}{text}{LINK_CLOSE}"


def strip_escapes(text: str) -> str:
    return ESCAPE_RE.sub("", text)


def visible_len(text: str) -> int:
    """Terminal cell width of ``text``, ignoring SGR and OSC-8 sequences."""
    return cell_len(strip_escapes(text))


def bel_links_to_st(text: str) -> str:
    # rich only decodes OSC sequences terminated by ST
    return BEL_LINK_RE.sub(lambda match: f"\x1b]8;;{match.group(1)}\x1b\\", text)


def pad_visible(text: str, width: int, align: str = "left") -> str:
    gap = max(0, width - visible_len(text))
    if align == "center":
        left = gap // 2
        return " " * left + text + " " * (gap - left)
    if align == "right":
        return " " * gap + text
    return text + " " * gap


def truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    if width <= 1:
        return value[: max(width, 0)]
    return f"{value[: width - 1]}…"


def fit(text: str, width: int) -> str:
    """Return ``text`` unchanged if it fits in ``width`` cells, else a plain truncation."""
    if visible_len(text) <= width:
        return text
    return truncate(strip_escapes(text), width)
