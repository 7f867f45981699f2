from __future__ import annotations

import re

from hnbrowse.ansi import (
    BOLD,
    DIMMED,
    GREEN,
    ITALIC,
    NORMAL,
    RED,
    hyperlink,
    visible_len,
)
from hnbrowse.models import CommentNode

DEFAULT_INDENT_SIZE = 5
RIGHT_MARGIN = 3
ALIGN_PADDING = 6
MODERATORS = frozenset({"dang", "sctb"})
PERMALINK_BASE = "https://news.ycombinator.com/item?id="

ANCHOR_RE = re.compile(r'<a href="([^"]*)"[^>]*>(.*?)</a>', re.DOTALL)
PRE_RE = re.compile(r"<pre><code>(.*?)</code></pre>", re.DOTALL)

# &amp; must stay last so "&amp;lt;" decodes to "&lt;" and not "<"
ENTITIES = (
    ("&#x27;", "'"),
    ("&gt;", ">"),
    ("&lt;", "<"),
    ("&#x2F;", "/"),
    ("&quot;", '"'),
    ("&amp;", "&"),
)


def replace_html(text: str) -> str:
    if text.startswith("<p>"):
        text = text[3:]
    text = text.replace("</p>", "").replace("<p>", "\n")
    text = text.replace("<i>", ITALIC).replace("</i>", NORMAL)
    text = text.replace("<pre><code>", DIMMED).replace("</code></pre>", NORMAL)
    return ANCHOR_RE.sub(lambda match: hyperlink(match.group(1), match.group(2)), text)


def replace_entities(text: str) -> str:
    for entity, char in ENTITIES:
        text = text.replace(entity, char)
    return text


def parse_comment(raw: str) -> str:
    """Turn comment markup into terminal text.

    Tags are converted before entities are decoded, so an escaped ``&lt;i&gt;``
    in a comment shows up as the literal text ``<i>``.
    """
    return replace_entities(replace_html(raw))


def wrap_line(line: str, width: int) -> list[str]:
    width = max(1, width)
    lines: list[str] = []
    current = ""
    current_len = 0
    for word in line.split():
        word_len = visible_len(word)
        if current and current_len + 1 + word_len > width:
            lines.append(current)
            current = word
            current_len = word_len
            continue
        if current:
            current += " "
            current_len += 1
        current += word
        current_len += word_len
    lines.append(current)
    return lines


def paragraphs(body: str) -> list[str]:
    return [paragraph for paragraph in body.split("\n") if paragraph.strip()]


def indent_block(lines: list[str], indent: int) -> str:
    prefix = " " * indent
    return "\n".join(prefix + line if line else line for line in lines)


def code_lines(code: str) -> list[str]:
    lines = replace_entities(code).strip("\n").split("\n")
    return [f"{DIMMED}{line.rstrip()}{NORMAL}" if line.strip() else "" for line in lines]


def render_blocks(raw: str, line_width: int, indent: int) -> list[str]:
    """Split a comment body into indented blocks.

    Prose paragraphs are wrapped to ``line_width``; ``<pre><code>`` blocks
    keep their own line breaks and leading whitespace.
    """
    blocks: list[str] = []
    # re.split alternates prose and captured code
    for position, part in enumerate(PRE_RE.split(raw)):
        if position % 2:
            if part.strip():
                blocks.append(indent_block(code_lines(part), indent))
            continue
        for paragraph in paragraphs(parse_comment(part)):
            blocks.append(indent_block(wrap_line(paragraph, line_width), indent))
    return blocks


def mark_op_and_mods(author: str, op: str) -> str:
    marked = author
    if author in MODERATORS:
        marked += f"{GREEN} mod{NORMAL}"
    if author == op:
        marked += f"{RED} OP{NORMAL}"
    return marked


def right_aligned_gap(author: str, time_ago: str, width: int, indent: int) -> int:
    gap = width - visible_len(author) - visible_len(time_ago) - ALIGN_PADDING - indent
    return max(0, gap)


def wrap_width(width: int, indent: int, comment_width: int = 0) -> int:
    available = width - indent - RIGHT_MARGIN
    if comment_width > 0:
        available = min(available, comment_width)
    return max(1, available)


def _append_comment(
    node: CommentNode,
    op: str,
    width: int,
    depth: int,
    indent_size: int,
    comment_width: int,
    out: list[str],
) -> None:
    indent = depth * indent_size
    author = mark_op_and_mods(node.author, op)
    gap = right_aligned_gap(author, node.time_ago, width, indent)
    out.append(
        f"{' ' * indent}{BOLD}{author}{NORMAL} {' ' * gap}{DIMMED}{node.time_ago}{NORMAL}\n"
    )

    blocks = render_blocks(node.content, wrap_width(width, indent, comment_width), indent)
    if blocks:
        out.extend(block + "\n\n" for block in blocks)
    else:
        out.append("\n")

    for reply in node.replies:
        _append_comment(reply, op, width, depth + 1, indent_size, comment_width, out)


def format_comment(
    node: CommentNode,
    op: str,
    width: int,
    depth: int = 0,
    indent_size: int = DEFAULT_INDENT_SIZE,
    comment_width: int = 0,
) -> str:
    """Render ``node`` and all of its replies, depth first, as one text block."""
    out: list[str] = []
    _append_comment(node, op, width, depth, indent_size, comment_width, out)
    return "".join(out)


def domain_label(node: CommentNode) -> str:
    if node.domain:
        return f"{DIMMED}  ({hyperlink(node.url, node.domain)}){NORMAL}"
    link = f"{PERMALINK_BASE}{node.id}"
    return f"{DIMMED}  ({hyperlink(link, f'item?id={node.id}')}){NORMAL}"


def format_header(node: CommentNode, comment_width: int = 0) -> str:
    headline = f"{BOLD}{node.title}{NORMAL}{domain_label(node)}"
    info_line = (
        f"{node.points} points by {BOLD}{node.author}{NORMAL} {node.time_ago}"
        f" | {node.comments_count} comments"
    )
    title_bar_length = visible_len(headline)

    parts = [headline, "\n", info_line, "\n\n"]
    line_width = title_bar_length
    if comment_width > 0:
        line_width = min(line_width, comment_width)
    blocks = render_blocks(node.content, line_width, 0)
    if blocks:
        parts.append("\n\n".join(blocks) + "\n")

    parts.append("-" * title_bar_length + "\n\n")
    return "".join(parts)


def format_thread(
    node: CommentNode,
    width: int,
    indent_size: int = DEFAULT_INDENT_SIZE,
    comment_width: int = 0,
) -> str:
    out = [format_header(node, comment_width)]
    for reply in node.replies:
        out.append(format_comment(reply, node.author, width, 0, indent_size, comment_width))
    return "".join(out)
