"""Declarative content blocks produced by the document model builder.

Blocks know nothing about pages; the paginated renderer decides where they
land.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Union


def format_money(value: Decimal) -> str:
    """Two decimals with thousands separators (``50,000.00``)."""
    return f"{value:,.2f}"


def format_date(value: date) -> str:
    """Calendar date as printed on documents (``15 Feb 2024``)."""
    return value.strftime("%d %b %Y")


def format_rate(value: Decimal) -> str:
    """Annual rate without trailing zeros (``12.5% p.a.``)."""
    return f"{value.normalize():f}% p.a."


def format_cell(value: Any) -> str:
    """Render a table cell value as text."""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format_money(value)
    if isinstance(value, date):
        return format_date(value)
    return str(value)


@dataclass(frozen=True)
class Column:
    """Table column; ``weight`` is its share of the content width."""

    label: str
    weight: float = 1.0
    align: str = "left"


@dataclass(frozen=True)
class HeaderBlock:
    title: str
    subtitle: str = ""


@dataclass(frozen=True)
class DetailBlock:
    """Titled list of label/value pairs, optionally with a picture."""

    title: str
    rows: tuple[tuple[str, str], ...]
    image: bytes | None = None


@dataclass(frozen=True)
class TableBlock:
    """Titled table.

    Cell values stay typed (Decimal, date, int, str) so the renderer can keep
    running totals for the columns listed in ``total_columns``.
    """

    title: str
    columns: tuple[Column, ...]
    rows: tuple[tuple[Any, ...], ...]
    total_columns: tuple[int, ...] = ()


@dataclass(frozen=True)
class TextBlock:
    title: str
    paragraphs: tuple[str, ...]
    numbered: bool = True


@dataclass(frozen=True)
class SignatureBlock:
    """Signature lines; each signatory is a tuple of caption lines."""

    signatories: tuple[tuple[str, ...], ...]


Block = Union[HeaderBlock, DetailBlock, TableBlock, TextBlock, SignatureBlock]
