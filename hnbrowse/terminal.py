from __future__ import annotations

from typing import Protocol

from rich.console import Console


class TerminalMetrics(Protocol):
    def width(self) -> int:
        ...

    def height(self) -> int:
        ...


class ConsoleMetrics:
    """Terminal size read from a rich console on every call."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def width(self) -> int:
        return self.console.size.width

    def height(self) -> int:
        return self.console.size.height


class FixedMetrics:
    def __init__(self, width: int = 80, height: int = 24) -> None:
        self._width = width
        self._height = height

    def width(self) -> int:
        return self._width

    def height(self) -> int:
        return self._height
