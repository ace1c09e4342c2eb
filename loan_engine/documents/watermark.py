"""Diagonal watermark overlay for rendered pages."""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from loan_engine.config import WatermarkConfig
from loan_engine.documents.primitives import Page, Watermark


class WatermarkOverlay:
    """Stamp the same rotated mark at the centre of every page.

    The overlay never modifies the pages it is given; it returns new ones.
    Pages produced purely by table overflow are marked like any other.
    """

    def __init__(self, config: WatermarkConfig | None = None) -> None:
        self.config = config or WatermarkConfig()

    def mark_for(self, page: Page) -> Watermark:
        """Watermark primitive for ``page``."""
        return Watermark(
            text=self.config.text,
            x=page.width / 2,
            y=page.height / 2,
            angle=self.config.angle,
            font=self.config.font,
            size=self.config.font_size,
            gray=self.config.gray,
        )

    def apply_to(self, pages: Sequence[Page]) -> list[Page]:
        """Return watermarked copies of ``pages``."""
        marked = []
        for page in pages:
            mark = self.mark_for(page)
            if self.config.layer == "under":
                primitives = (mark,) + page.primitives
            else:
                primitives = page.primitives + (mark,)
            marked.append(replace(page, primitives=primitives))
        return marked
