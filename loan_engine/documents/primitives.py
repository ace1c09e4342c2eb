"""Absolutely positioned drawing primitives and the page that holds them.

Coordinates are PDF points measured from the top-left corner of the page;
``y`` of a ``TextRun`` is its baseline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextRun:
    x: float
    y: float
    text: str
    font: str = "Helvetica"
    size: float = 10.0
    align: str = "left"  # left, right or center


@dataclass(frozen=True)
class Rule:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.5


@dataclass(frozen=True)
class Cell:
    x: float
    width: float
    text: str
    align: str = "left"


@dataclass(frozen=True)
class TableRow:
    """One table row; ``kind`` is header, body, carried, brought or total."""

    x: float
    y: float
    width: float
    height: float
    cells: tuple[Cell, ...]
    kind: str = "body"
    font: str = "Helvetica"
    size: float = 8.0


@dataclass(frozen=True)
class ImageBox:
    x: float
    y: float
    width: float
    height: float
    data: bytes


@dataclass(frozen=True)
class Watermark:
    """Rotated text mark centred on ``(x, y)``."""

    text: str
    x: float
    y: float
    angle: float
    font: str
    size: float
    gray: float


Primitive = Union[TextRun, Rule, TableRow, ImageBox, Watermark]


@dataclass(frozen=True)
class Page:
    number: int
    width: float
    height: float
    primitives: tuple[Primitive, ...] = ()

    @property
    def rows(self) -> list[TableRow]:
        return [p for p in self.primitives if isinstance(p, TableRow)]

    @property
    def texts(self) -> list[str]:
        return [p.text for p in self.primitives if isinstance(p, TextRun)]

    @property
    def watermarks(self) -> list[Watermark]:
        return [p for p in self.primitives if isinstance(p, Watermark)]
