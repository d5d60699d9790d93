"""Tests for the paginated canvas document layout."""
from __future__ import annotations

from startsmart.export import (
    DOCUMENT_TITLE,
    LayoutConfig,
    content_disposition,
    document_filename,
    layout_canvas,
    render_text,
)
from startsmart.scorer import CANVAS_BLOCKS, generate_canvas


def headings(page) -> list[str]:
    return [i.text for i in page.items if i.style == "heading"]


class TestLayout:
    def test_default_canvas_fits_one_page(self):
        pages = layout_canvas("Foo", generate_canvas("Foo", "..."))
        assert len(pages) == 1
        assert headings(pages[0]) == [b.title for b in CANVAS_BLOCKS]

    def test_header_positions(self):
        page = layout_canvas("Foo", generate_canvas("Foo", "..."))[0]
        title, subtitle, first = page.items[:3]
        assert (title.y, title.text) == (20.0, DOCUMENT_TITLE)
        assert (subtitle.y, subtitle.text) == (35.0, "Foo")
        assert (first.y, first.style) == (55.0, "heading")

    def test_page_break_past_threshold(self):
        cfg = LayoutConfig(break_at=100.0)
        pages = layout_canvas("Foo", generate_canvas("Foo", "..."), cfg)
        assert len(pages) == 3
        assert len(headings(pages[0])) == 2
        assert len(headings(pages[1])) == 4
        assert len(headings(pages[2])) == 3
        assert pages[1].items[0].y == cfg.margin

    def test_long_block_wraps_and_pushes_break(self):
        canvas = generate_canvas("Foo", "...")
        canvas["key_partners"] = "partner " * 300
        pages = layout_canvas("Foo", canvas)
        body = [i for i in pages[0].items if i.style == "body"]
        assert len(body) > 20
        assert all(len(i.text) <= 80 for i in body)
        assert len(pages) == 2
        assert headings(pages[1])[0] == "Key Activities"

    def test_every_block_present_once(self):
        canvas = {b.key: "text " * 60 for b in CANVAS_BLOCKS}
        pages = layout_canvas("Foo", canvas)
        all_headings = [h for p in pages for h in headings(p)]
        assert all_headings == [b.title for b in CANVAS_BLOCKS]

    def test_empty_block_still_placed(self):
        pages = layout_canvas("Foo", {})
        assert len(headings(pages[0])) == 9


class TestRenderText:
    def test_render(self):
        text = render_text(layout_canvas("Foo", generate_canvas("Foo", "...")))
        assert text.startswith("--- Page 1 ---")
        assert "## Value Proposition" in text
        assert "Foo - Solving key problems" in text

    def test_filename(self):
        assert document_filename("Foo") == "Foo-BMC.txt"

    def test_content_disposition_ascii(self):
        assert content_disposition("Foo-BMC.txt") == (
            "attachment; filename=\"Foo-BMC.txt\"; filename*=UTF-8''Foo-BMC.txt"
        )

    def test_content_disposition_is_latin1_safe(self):
        header = content_disposition(document_filename('Наш "стартап" 🚀'))
        header.encode("latin-1")
        assert 'filename="  -BMC.txt"' in header
        assert "filename*=UTF-8''" in header
