"""Serialize rendered pages to PDF with reportlab."""

from __future__ import annotations

import io
import logging
from typing import Sequence

from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from loan_engine.documents.primitives import (
    ImageBox,
    Page,
    Primitive,
    Rule,
    TableRow,
    TextRun,
    Watermark,
)
from loan_engine.exceptions import InvalidEntityStateError

logger = logging.getLogger(__name__)

HEADER_FILL = HexColor("#16A34A")
SUMMARY_FILL = HexColor("#EEF2F0")
GRID = HexColor("#9CA3AF")
INK = HexColor("#111827")
WHITE = HexColor("#FFFFFF")
CELL_PADDING = 3.0


class PdfWriter:
    """Draw pages primitive by primitive onto a reportlab canvas."""

    def __init__(self, author: str = "") -> None:
        self.author = author

    def write(self, pages: Sequence[Page], title: str = "") -> bytes:
        """Return the PDF bytes for ``pages``."""
        if not pages:
            raise InvalidEntityStateError("Cannot write a PDF without pages")

        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(pages[0].width, pages[0].height))
        pdf.setTitle(title)
        pdf.setAuthor(self.author)

        for page in pages:
            pdf.setPageSize((page.width, page.height))
            for primitive in page.primitives:
                self._draw(pdf, page, primitive)
            pdf.showPage()

        pdf.save()
        content = buffer.getvalue()
        logger.debug("Wrote %d pages (%d bytes) for %r", len(pages), len(content), title)
        return content

    def _draw(self, pdf: canvas.Canvas, page: Page, primitive: Primitive) -> None:
        if isinstance(primitive, TextRun):
            self._draw_text(pdf, page, primitive)
        elif isinstance(primitive, TableRow):
            self._draw_row(pdf, page, primitive)
        elif isinstance(primitive, Rule):
            pdf.saveState()
            pdf.setLineWidth(primitive.width)
            pdf.line(
                primitive.x1,
                page.height - primitive.y1,
                primitive.x2,
                page.height - primitive.y2,
            )
            pdf.restoreState()
        elif isinstance(primitive, ImageBox):
            pdf.drawImage(
                ImageReader(io.BytesIO(primitive.data)),
                primitive.x,
                page.height - primitive.y - primitive.height,
                width=primitive.width,
                height=primitive.height,
                preserveAspectRatio=True,
                mask="auto",
            )
        elif isinstance(primitive, Watermark):
            self._draw_watermark(pdf, page, primitive)
        else:
            raise TypeError(f"Unsupported primitive {type(primitive).__name__}")

    @staticmethod
    def _draw_string(pdf: canvas.Canvas, x: float, y: float, text: str, align: str) -> None:
        if align == "right":
            pdf.drawRightString(x, y, text)
        elif align == "center":
            pdf.drawCentredString(x, y, text)
        else:
            pdf.drawString(x, y, text)

    def _draw_text(self, pdf: canvas.Canvas, page: Page, run: TextRun) -> None:
        pdf.saveState()
        pdf.setFillColor(INK)
        pdf.setFont(run.font, run.size)
        self._draw_string(pdf, run.x, page.height - run.y, run.text, run.align)
        pdf.restoreState()

    def _draw_row(self, pdf: canvas.Canvas, page: Page, row: TableRow) -> None:
        bottom = page.height - row.y - row.height
        pdf.saveState()
        pdf.setLineWidth(0.3)
        pdf.setStrokeColor(GRID)

        if row.kind == "header":
            pdf.setFillColor(HEADER_FILL)
            pdf.rect(row.x, bottom, row.width, row.height, fill=1, stroke=0)
        elif row.kind != "body":
            pdf.setFillColor(SUMMARY_FILL)
            pdf.rect(row.x, bottom, row.width, row.height, fill=1, stroke=0)

        pdf.setFont(row.font, row.size)
        pdf.setFillColor(WHITE if row.kind == "header" else INK)
        baseline = bottom + (row.height - row.size) / 2 + 1.5
        for cell in row.cells:
            pdf.rect(cell.x, bottom, cell.width, row.height, fill=0, stroke=1)
            if cell.align == "right":
                x = cell.x + cell.width - CELL_PADDING
            elif cell.align == "center":
                x = cell.x + cell.width / 2
            else:
                x = cell.x + CELL_PADDING
            self._draw_string(pdf, x, baseline, cell.text, cell.align)
        pdf.restoreState()

    @staticmethod
    def _draw_watermark(pdf: canvas.Canvas, page: Page, mark: Watermark) -> None:
        pdf.saveState()
        pdf.setFillGray(mark.gray)
        pdf.setFont(mark.font, mark.size)
        pdf.translate(mark.x, page.height - mark.y)
        pdf.rotate(mark.angle)
        pdf.drawCentredString(0, 0, mark.text)
        pdf.restoreState()
