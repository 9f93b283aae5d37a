"""Tests for block tree rendering and page extraction."""

import logging

import httpx
import pytest

from seeker.common.accounting import ApiCallCounter
from seeker.common.notion_client import StoreAuthError, StoreError
from seeker.search.extractor import (
    BANNER_WIDTH,
    ContentExtractor,
    PageContent,
    normalize_text,
    render_block,
)
from seeker.search.searcher import PageSummary
from seeker.tests.fakes import make_block, make_page


def summary(page_id, title="Page"):
    return PageSummary(id=page_id, title=title, url=f"https://www.notion.so/{page_id}")


class TestRenderBlock:
    @pytest.mark.parametrize("block_type,expected", [
        ("paragraph", "hello"),
        ("heading_1", "# hello"),
        ("heading_2", "## hello"),
        ("heading_3", "### hello"),
        ("bulleted_list_item", "• hello"),
        ("numbered_list_item", "1. hello"),
        ("toggle", "▶ hello"),
        ("quote", "> hello"),
    ])
    def test_text_blocks(self, block_type, expected):
        assert render_block(make_block("b", block_type, "hello")) == expected

    def test_to_do(self):
        assert render_block(make_block("b", "to_do", "ship it", checked=True)) == "✓ ship it"
        assert render_block(make_block("b", "to_do", "later", checked=False)) == "○ later"

    def test_callout_default_icon(self):
        assert render_block(make_block("b", "callout", "note")) == "💡 note"

    def test_callout_custom_icon(self):
        block = make_block("b", "callout", "careful", icon={"type": "emoji", "emoji": "⚠️"})
        assert render_block(block) == "⚠️ careful"

    def test_code(self):
        block = make_block("b", "code", "print(1)", language="python")
        assert render_block(block) == "```python\nprint(1)\n```"

    def test_divider(self):
        assert render_block({"id": "b", "type": "divider", "divider": {}}) == "---"

    def test_image(self):
        block = make_block("b", "image", external={"url": "https://img.example/x.png"})
        assert render_block(block) == "![圖片](https://img.example/x.png)"

    def test_bookmark(self):
        block = make_block("b", "bookmark", url="https://example.com")
        assert render_block(block) == "[書籤：https://example.com](https://example.com)"

    def test_child_page(self):
        block = {"id": "c", "type": "child_page", "child_page": {"title": "Sub"}}
        assert render_block(block) == "📄 【子頁面：Sub】"

    def test_child_database(self):
        block = {"id": "d", "type": "child_database", "child_database": {"title": "Tasks"}}
        assert render_block(block) == "🗃️ 【子資料庫：Tasks】"

    def test_table_row(self):
        block = make_block("r", "table_row", cells=[[{"plain_text": "a"}], [{"plain_text": "b"}]])
        assert render_block(block) == "a | b"

    def test_unsupported_type(self):
        assert render_block({"id": "x", "type": "mystery", "mystery": {}}) == "[不支援的區塊：mystery]"

    def test_empty_paragraph_skipped(self):
        assert render_block(make_block("b", "paragraph")) is None

    def test_container_skipped(self):
        assert render_block({"id": "c", "type": "column_list", "column_list": {}}) is None

    def test_indent_applies_to_every_line(self):
        block = make_block("b", "code", "a\nb", language="")
        assert render_block(block, depth=2) == "    ```\n    a\n    b\n    ```"


class TestNormalizeText:
    def test_banner(self):
        text = normalize_text("React", "body")
        rule = "=" * BANNER_WIDTH
        assert text.startswith(f"{rule}\n📄 React\n{rule}\n\nbody")

    def test_blank_runs_collapsed(self):
        text = normalize_text("T", "a\n\n\n\n\nb")
        assert "a\n\nb" in text
        assert "\n\n\n" not in text

    def test_divider_padded(self):
        text = normalize_text("T", "above\n---\nbelow")
        assert "above\n\n---\n\nbelow" in text

    def test_code_fence_padded(self):
        text = normalize_text("T", "intro\n```py\nx = 1\n```\nafter")
        assert "intro\n\n```py\nx = 1\n```\n\nafter" in text


class TestContentExtractor:
    @pytest.mark.asyncio
    async def test_simple_page(self, store, no_delay):
        store.add_page("p1", "React Hooks", [
            make_block("b1", "heading_1", "Intro"),
            make_block("b2", "paragraph", "useState and useEffect"),
        ])
        extractor = ContentExtractor(store, no_delay)
        counter = ApiCallCounter()

        content = await extractor.extract(summary("p1"), counter)

        assert isinstance(content, PageContent)
        assert content.title == "React Hooks"
        assert "# Intro\nuseState and useEffect" in content.text
        assert content.length == len(content.text)
        assert counter.store_calls == 2

    @pytest.mark.asyncio
    async def test_depth_limit(self, store, no_delay):
        store.add_page("root", "Deep", [make_block("d0", "paragraph", "level 0", has_children=True)])
        for level in range(1, 5):
            store.children[f"d{level - 1}"] = [
                make_block(f"d{level}", "paragraph", f"level {level}", has_children=True)
            ]
        extractor = ContentExtractor(store, no_delay, max_depth=3)

        content = await extractor.extract(summary("root"))

        assert "level 0\n  level 1\n    level 2\n      level 3" in content.text
        assert "level 4" not in content.text
        assert "children:d3" not in store.calls
        assert "children:d2" in store.calls

    @pytest.mark.asyncio
    async def test_depth_zero_reads_root_only(self, store, no_delay):
        store.add_page("root", "Flat", [make_block("d0", "paragraph", "top", has_children=True)])
        store.children["d0"] = [make_block("d1", "paragraph", "nested")]
        extractor = ContentExtractor(store, no_delay, max_depth=0)

        content = await extractor.extract(summary("root"))

        assert "top" in content.text
        assert "nested" not in content.text

    @pytest.mark.asyncio
    async def test_child_fetch_error_becomes_placeholder(self, store, no_delay):
        store.add_page("p1", "Partly broken", [
            make_block("b1", "toggle", "details", has_children=True),
            make_block("b2", "paragraph", "still here"),
        ])
        store.errors["children:b1"] = StoreError("boom", 500)
        extractor = ContentExtractor(store, no_delay)

        content = await extractor.extract(summary("p1"))

        assert "▶ details\n  [無法讀取子區塊：boom]\nstill here" in content.text

    @pytest.mark.asyncio
    async def test_child_fetch_timeout_becomes_placeholder(self, store, no_delay):
        store.add_page("p1", "Slow toggle", [
            make_block("b1", "toggle", "details", has_children=True),
            make_block("b2", "paragraph", "still here"),
        ])
        store.errors["children:b1"] = httpx.ReadTimeout("timed out")
        extractor = ContentExtractor(store, no_delay)

        content = await extractor.extract(summary("p1"))

        assert "▶ details\n  [無法讀取子區塊：timed out]\nstill here" in content.text

    @pytest.mark.asyncio
    async def test_page_connect_error_returns_none(self, store, no_delay):
        store.add_page("p1", "Unreachable")
        store.errors["page:p1"] = httpx.ConnectError("connection refused")
        extractor = ContentExtractor(store, no_delay)

        assert await extractor.extract(summary("p1")) is None

    @pytest.mark.asyncio
    async def test_auth_error_returns_none(self, store, no_delay, caplog):
        store.add_page("p1", "Private")
        store.errors["page:p1"] = StoreAuthError("unauthorized", 401)
        extractor = ContentExtractor(store, no_delay)

        with caplog.at_level(logging.WARNING, logger="seeker.search.extractor"):
            assert await extractor.extract(summary("p1")) is None
        assert "not accessible" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_page_returns_none(self, store, no_delay):
        extractor = ContentExtractor(store, no_delay)
        assert await extractor.extract(summary("ghost")) is None

    @pytest.mark.asyncio
    async def test_child_database_rows_expanded(self, store, no_delay):
        store.add_page("p1", "Project", [
            {"id": "db1", "type": "child_database", "child_database": {"title": "Tasks"}, "has_children": False},
        ])
        store.databases["db1"] = [make_page("row1", "Write docs")]
        store.children["row1"] = [make_block("r1b", "paragraph", "draft README")]
        extractor = ContentExtractor(store, no_delay)

        content = await extractor.extract(summary("p1"))

        assert "🗃️ 【子資料庫：Tasks】" in content.text
        assert "  📄 【子頁面：Write docs】" in content.text
        assert "    draft README" in content.text
        assert "database:db1" in store.calls

    @pytest.mark.asyncio
    async def test_metadata_refreshed_from_page(self, store, no_delay):
        store.add_page("p1", "Current title")
        extractor = ContentExtractor(store, no_delay)

        content = await extractor.extract(PageSummary(id="p1", title="Stale", matched_keyword="k"))

        assert content.title == "Current title"
        assert content.url == "https://www.notion.so/p1"
        assert content.page.matched_keyword == "k"
        assert content.to_dict()["length"] == content.length

    @pytest.mark.asyncio
    async def test_extract_many_skips_unreadable(self, store, no_delay):
        store.add_page("p1", "One")
        store.add_page("p3", "Three")
        extractor = ContentExtractor(store, no_delay)

        contents = await extractor.extract_many([summary("p1"), summary("p2"), summary("p3")])

        assert [c.id for c in contents] == ["p1", "p3"]
