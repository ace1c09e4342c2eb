"""Lay a content tree out on fixed-size pages.

The renderer is a small state machine: it measures the next block (or
table row), places it when it fits, and on overflow flushes the current
page before continuing the same block on a fresh one. Table rows are never
split; a table that crosses a page boundary repeats its header row and,
when it carries running totals, closes the page with a "Carried forward"
row and opens the next with a "Brought forward" row.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from reportlab.lib.utils import simpleSplit

from loan_engine.config import LayoutConfig, resolve_page_size
from loan_engine.documents.blocks import (
    Block,
    DetailBlock,
    HeaderBlock,
    SignatureBlock,
    TableBlock,
    TextBlock,
    format_cell,
)
from loan_engine.documents.primitives import (
    Cell,
    ImageBox,
    Page,
    Primitive,
    Rule,
    TableRow,
    TextRun,
)
from loan_engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SIGNATURE_WIDTH = 170.0
SIGNATURE_GAP = 36.0


class _PageCursor:
    """Vertical cursor over the page being filled."""

    def __init__(self, width: float, height: float, layout: LayoutConfig) -> None:
        self.width = width
        self.height = height
        self.top = layout.margin_top
        self.bottom = height - layout.margin_bottom
        self.content_width = width - layout.margin_left - layout.margin_right
        self.y = self.top
        self.current: list[Primitive] = []
        self.pages: list[list[Primitive]] = []

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    @property
    def capacity(self) -> float:
        return self.bottom - self.top

    @property
    def is_blank(self) -> bool:
        return not self.current

    def ensure(self, needed: float) -> None:
        """Start a new page unless ``needed`` points fit on this one."""
        if needed > self.remaining and not self.is_blank:
            self.flush()

    def flush(self) -> None:
        self.pages.append(self.current)
        self.current = []
        self.y = self.top

    def place(self, primitive: Primitive) -> None:
        self.current.append(primitive)

    def finish(self) -> list[list[Primitive]]:
        if self.current or not self.pages:
            self.pages.append(self.current)
            self.current = []
        return self.pages


class PaginatedRenderer:
    """Render content blocks into numbered pages of primitives."""

    def __init__(self, layout: LayoutConfig | None = None) -> None:
        self.layout = layout or LayoutConfig()

    def render(
        self,
        content: Sequence[Block],
        page_size: str | tuple[float, float] | None = None,
    ) -> list[Page]:
        """Lay ``content`` out and return pages numbered from 1.

        Parameters
        ----------
        content : Sequence[Block]
            Blocks in reading order.
        page_size : str | tuple[float, float] | None
            Page size name (``"A4"``) or ``(width, height)`` in points;
            defaults to the layout's page size.

        Raises
        ------
        ConfigurationError
            If a page cannot hold even one table row.
        """
        if page_size is None:
            width, height = self.layout.dimensions
        elif isinstance(page_size, str):
            width, height = resolve_page_size(page_size)
        else:
            width, height = page_size

        cursor = _PageCursor(width, height, self.layout)
        for block in content:
            if isinstance(block, HeaderBlock):
                self._place_header(cursor, block)
            elif isinstance(block, DetailBlock):
                self._place_details(cursor, block)
            elif isinstance(block, TableBlock):
                self._place_table(cursor, block)
            elif isinstance(block, TextBlock):
                self._place_text(cursor, block)
            elif isinstance(block, SignatureBlock):
                self._place_signatures(cursor, block)
            else:
                raise TypeError(f"Unsupported block type {type(block).__name__}")

        pages = self._number(cursor.finish(), width, height)
        logger.debug("Rendered %d blocks onto %d pages", len(content), len(pages))
        return pages

    def _number(self, contents: list[list[Primitive]], width: float, height: float) -> list[Page]:
        total = len(contents)
        footer_y = height - self.layout.margin_bottom / 2
        return [
            Page(
                number=number,
                width=width,
                height=height,
                primitives=tuple(primitives)
                + (
                    TextRun(
                        width / 2,
                        footer_y,
                        f"Page {number} of {total}",
                        self.layout.font,
                        self.layout.footer_size,
                        "center",
                    ),
                ),
            )
            for number, primitives in enumerate(contents, start=1)
        ]

    # --- Blocks ---

    def _heading(self, cursor: _PageCursor, title: str) -> None:
        layout = self.layout
        cursor.y += layout.heading_size
        cursor.place(TextRun(layout.margin_left, cursor.y, title, layout.bold_font, layout.heading_size))
        cursor.y += layout.line_height - layout.heading_size + 4

    def _heading_height(self) -> float:
        return self.layout.line_height + 4

    def _place_header(self, cursor: _PageCursor, block: HeaderBlock) -> None:
        layout = self.layout
        height = layout.title_size * 1.4 + layout.subtitle_size * 1.4 + layout.block_spacing
        cursor.ensure(height)

        center = cursor.width / 2
        cursor.y += layout.title_size
        cursor.place(TextRun(center, cursor.y, block.title, layout.bold_font, layout.title_size, "center"))
        cursor.y += layout.title_size * 0.4
        if block.subtitle:
            cursor.y += layout.subtitle_size
            cursor.place(TextRun(center, cursor.y, block.subtitle, layout.font, layout.subtitle_size, "center"))
            cursor.y += layout.subtitle_size * 0.4
        cursor.y += 4
        cursor.place(
            Rule(layout.margin_left, cursor.y, cursor.width - layout.margin_right, cursor.y, 0.5)
        )
        cursor.y += layout.block_spacing

    def _place_details(self, cursor: _PageCursor, block: DetailBlock) -> None:
        layout = self.layout
        text_width = cursor.content_width
        if block.image:
            text_width -= layout.photo_size + 12

        lines: list[str] = []
        for label, value in block.rows:
            lines.extend(simpleSplit(f"{label}: {value}", layout.font, layout.body_size, text_width))

        text_height = len(lines) * layout.line_height
        if block.image:
            text_height = max(text_height, layout.photo_size)
        cursor.ensure(self._heading_height() + text_height + layout.block_spacing)

        self._heading(cursor, block.title)
        top = cursor.y
        if block.image:
            cursor.place(
                ImageBox(
                    cursor.width - layout.margin_right - layout.photo_size,
                    top,
                    layout.photo_size,
                    layout.photo_size,
                    block.image,
                )
            )
        for line in lines:
            cursor.y += layout.line_height
            cursor.place(TextRun(layout.margin_left, cursor.y - 3, line, layout.font, layout.body_size))
        cursor.y = top + text_height + layout.block_spacing

    def _place_text(self, cursor: _PageCursor, block: TextBlock) -> None:
        layout = self.layout
        lines: list[str] = []
        for index, paragraph in enumerate(block.paragraphs, start=1):
            text = f"{index}. {paragraph}" if block.numbered else paragraph
            lines.extend(simpleSplit(text, layout.font, layout.body_size, cursor.content_width))

        cursor.ensure(self._heading_height() + layout.line_height)
        self._heading(cursor, block.title)
        for line in lines:
            cursor.ensure(layout.line_height)
            cursor.y += layout.line_height
            cursor.place(TextRun(layout.margin_left, cursor.y - 3, line, layout.font, layout.body_size))
        cursor.y += layout.block_spacing

    def _place_signatures(self, cursor: _PageCursor, block: SignatureBlock) -> None:
        layout = self.layout
        captions = max((len(s) for s in block.signatories), default=0)
        cursor.ensure(SIGNATURE_GAP + captions * layout.line_height + layout.block_spacing)

        count = len(block.signatories)
        line_y = cursor.y + SIGNATURE_GAP
        for index, captions_lines in enumerate(block.signatories):
            if count == 1 or index == 0:
                x = layout.margin_left
            elif index == count - 1:
                x = cursor.width - layout.margin_right - SIGNATURE_WIDTH
            else:
                step = (cursor.content_width - SIGNATURE_WIDTH) / (count - 1)
                x = layout.margin_left + step * index
            cursor.place(Rule(x, line_y, x + SIGNATURE_WIDTH, line_y, 0.2))
            for offset, caption in enumerate(captions_lines, start=1):
                cursor.place(
                    TextRun(
                        x + SIGNATURE_WIDTH / 2,
                        line_y + offset * layout.line_height,
                        caption,
                        layout.font,
                        layout.body_size,
                        "center",
                    )
                )
        cursor.y = line_y + captions * layout.line_height + layout.block_spacing

    # --- Tables ---

    def _place_table(self, cursor: _PageCursor, block: TableBlock) -> None:
        layout = self.layout
        row_height = layout.row_height
        has_totals = bool(block.total_columns)
        # Room kept below every body row for the carried-forward or total row
        reserve = row_height if has_totals else 0.0

        first_page_need = self._heading_height() + 2 * row_height + reserve
        continuation_need = (3 if has_totals else 2) * row_height + reserve
        if max(first_page_need, continuation_need) > cursor.capacity:
            raise ConfigurationError(
                f"Page height leaves no room for a row of table {block.title!r}",
                table=block.title,
                capacity=cursor.capacity,
            )

        positions = self._column_positions(cursor, block)
        cursor.ensure(first_page_need)
        self._heading(cursor, block.title)
        self._place_row(cursor, positions, block, [c.label for c in block.columns], "header")

        running = {index: Decimal("0") for index in block.total_columns}
        for row in block.rows:
            if row_height + reserve > cursor.remaining:
                if has_totals:
                    self._place_summary(cursor, positions, block, "Carried forward", running, "carried")
                cursor.flush()
                self._place_row(cursor, positions, block, [c.label for c in block.columns], "header")
                if has_totals:
                    self._place_summary(cursor, positions, block, "Brought forward", running, "brought")

            self._place_row(cursor, positions, block, [format_cell(v) for v in row], "body")
            for index in running:
                value = row[index]
                if isinstance(value, Decimal):
                    running[index] += value

        if has_totals:
            self._place_summary(cursor, positions, block, "Total", running, "total")
        cursor.y += layout.block_spacing

    def _column_positions(self, cursor: _PageCursor, block: TableBlock) -> list[tuple[float, float]]:
        total_weight = sum(column.weight for column in block.columns)
        x = self.layout.margin_left
        positions = []
        for column in block.columns:
            width = cursor.content_width * column.weight / total_weight
            positions.append((x, width))
            x += width
        return positions

    def _place_row(
        self,
        cursor: _PageCursor,
        positions: list[tuple[float, float]],
        block: TableBlock,
        texts: list[str],
        kind: str,
    ) -> None:
        layout = self.layout
        cells = tuple(
            Cell(x, width, text, "left" if kind == "header" else column.align)
            for (x, width), text, column in zip(positions, texts, block.columns)
        )
        font = layout.bold_font if kind != "body" else layout.font
        cursor.place(
            TableRow(
                layout.margin_left,
                cursor.y,
                cursor.content_width,
                layout.row_height,
                cells,
                kind,
                font,
                layout.table_size,
            )
        )
        cursor.y += layout.row_height

    def _place_summary(
        self,
        cursor: _PageCursor,
        positions: list[tuple[float, float]],
        block: TableBlock,
        label: str,
        running: dict[int, Decimal],
        kind: str,
    ) -> None:
        """Place a totals row; the label spans the columns before the first total."""
        first_total = min(running)
        label_x = positions[0][0]
        label_width = sum(width for _, width in positions[:first_total])
        cells = [Cell(label_x, label_width, label)]
        for index in range(first_total, len(block.columns)):
            x, width = positions[index]
            text = format_cell(running[index]) if index in running else ""
            cells.append(Cell(x, width, text, block.columns[index].align))

        cursor.place(
            TableRow(
                self.layout.margin_left,
                cursor.y,
                cursor.content_width,
                self.layout.row_height,
                tuple(cells),
                kind,
                self.layout.bold_font,
                self.layout.table_size,
            )
        )
        cursor.y += self.layout.row_height
