"""Paginated canvas document layout.

Positions are in page units (an A4 page is 297 high).  Blocks flow top to
bottom; before placing a block, a new page starts if the cursor is already
past ``break_at``.  A block is never split, so a long block may run beyond
``break_at`` on its page.
"""
from __future__ import annotations

import textwrap
import unicodedata
from dataclasses import dataclass, field
from urllib.parse import quote

from startsmart.scorer import CANVAS_BLOCKS

DOCUMENT_TITLE = "Business Model Canvas"


@dataclass(frozen=True)
class LayoutConfig:
    page_height: float = 297.0
    margin: float = 20.0
    break_at: float = 250.0
    title_gap: float = 15.0
    subtitle_gap: float = 20.0
    heading_gap: float = 8.0
    line_height: float = 6.0
    block_gap: float = 10.0
    wrap_width: int = 80


@dataclass(frozen=True)
class PlacedText:
    y: float
    text: str
    style: str  # "title" | "subtitle" | "heading" | "body"


@dataclass
class Page:
    number: int
    items: list[PlacedText] = field(default_factory=list)


def layout_canvas(
    idea_title: str, canvas: dict[str, str], config: LayoutConfig | None = None,
) -> list[Page]:
    cfg = config or LayoutConfig()
    pages = [Page(1)]
    y = cfg.margin

    pages[0].items.append(PlacedText(y, DOCUMENT_TITLE, "title"))
    y += cfg.title_gap
    pages[0].items.append(PlacedText(y, idea_title, "subtitle"))
    y += cfg.subtitle_gap

    for block in CANVAS_BLOCKS:
        if y > cfg.break_at:
            pages.append(Page(len(pages) + 1))
            y = cfg.margin
        page = pages[-1]
        page.items.append(PlacedText(y, block.title, "heading"))
        y += cfg.heading_gap
        lines = textwrap.wrap(canvas.get(block.key, ""), cfg.wrap_width) or [""]
        for offset, line in enumerate(lines):
            page.items.append(PlacedText(y + offset * cfg.line_height, line, "body"))
        y += len(lines) * cfg.line_height + cfg.block_gap
    return pages


def render_text(pages: list[Page]) -> str:
    out: list[str] = []
    for page in pages:
        out.append(f"--- Page {page.number} ---")
        for item in page.items:
            if item.style == "title":
                out.append(item.text.upper())
            elif item.style == "subtitle":
                out.extend((item.text, ""))
            elif item.style == "heading":
                out.append(f"## {item.text}")
            else:
                out.append(item.text)
        out.append("")
    return "\n".join(out)


def document_filename(idea_title: str) -> str:
    return f"{idea_title}-BMC.txt"


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the RFC 5987 UTF-8 form.

    Header values go out as latin-1, so the raw title cannot be used as is.
    """
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = "".join(c for c in ascii_name if c.isprintable() and c not in "\"\\")
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(filename)}'
