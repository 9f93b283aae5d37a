"""Tests for keyword title search."""

import logging

import httpx
import pytest

from seeker.common.accounting import ApiCallCounter
from seeker.common.notion_client import StoreError
from seeker.search.searcher import (
    UNTITLED,
    PageSearcher,
    extract_title,
    page_summary_from_notion,
    rich_text_to_plain,
)
from seeker.tests.fakes import make_page


class TestTitles:
    def test_rich_text_joined(self):
        assert rich_text_to_plain([{"plain_text": "React "}, {"plain_text": "Hooks"}]) == "React Hooks"

    def test_rich_text_not_a_list(self):
        assert rich_text_to_plain(None) == ""

    def test_title_property(self):
        assert extract_title(make_page("p1", "React Hooks")) == "React Hooks"

    def test_database_title(self):
        db = {"object": "database", "title": [{"plain_text": "Reading list"}], "properties": {}}
        assert extract_title(db) == "Reading list"

    def test_untitled(self):
        assert extract_title({"properties": {}}) == UNTITLED

    def test_summary_fields(self):
        summary = page_summary_from_notion(make_page("p1", "React", edited="2024-06-01T00:00:00.000Z"), "react")
        assert summary.to_dict() == {
            "pageId": "p1",
            "title": "React",
            "url": "https://www.notion.so/p1",
            "lastEdited": "2024-06-01T00:00:00.000Z",
            "createdTime": "2024-01-01T00:00:00.000Z",
            "matchedKeyword": "react",
        }


class TestPageSearcher:
    @pytest.mark.asyncio
    async def test_dedup_first_keyword_wins(self, store, no_delay):
        store.search_results["React"] = [make_page("p1", "React Hooks"), make_page("p2", "React Router")]
        store.search_results["JSX"] = [make_page("p2", "React Router"), make_page("p3", "JSX basics")]
        searcher = PageSearcher(store, no_delay)

        pages = await searcher.search(["React", "JSX"])

        assert [p.id for p in pages] == ["p1", "p2", "p3"]
        assert pages[1].matched_keyword == "React"
        assert pages[2].matched_keyword == "JSX"

    @pytest.mark.asyncio
    async def test_failed_keyword_is_skipped(self, store, no_delay, caplog):
        store.errors["search:broken"] = StoreError("server error", 500)
        store.search_results["fine"] = [make_page("p1", "Fine")]
        searcher = PageSearcher(store, no_delay)
        counter = ApiCallCounter()

        with caplog.at_level(logging.ERROR, logger="seeker.search.searcher"):
            pages = await searcher.search(["broken", "fine"], counter=counter)

        assert [p.id for p in pages] == ["p1"]
        assert counter.store_calls == 2
        assert "broken" in caplog.text

    @pytest.mark.asyncio
    async def test_timed_out_keyword_is_skipped(self, store, no_delay):
        store.errors["search:slow"] = httpx.ReadTimeout("timed out")
        store.search_results["good"] = [make_page("p1", "Good")]
        searcher = PageSearcher(store, no_delay)
        counter = ApiCallCounter()

        pages = await searcher.search(["slow", "good"], counter=counter)

        assert [p.id for p in pages] == ["p1"]
        assert counter.store_calls == 2

    @pytest.mark.asyncio
    async def test_truncated_to_max_results(self, store, no_delay):
        store.search_results["notes"] = [make_page(f"p{i}", f"Note {i}") for i in range(8)]
        searcher = PageSearcher(store, no_delay, page_size=10, max_results=5)

        pages = await searcher.search(["notes"])

        assert [p.id for p in pages] == ["p0", "p1", "p2", "p3", "p4"]

    @pytest.mark.asyncio
    async def test_no_keywords(self, store, no_delay):
        searcher = PageSearcher(store, no_delay)
        assert await searcher.search([]) == []
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_one_call_per_keyword(self, store, no_delay):
        searcher = PageSearcher(store, no_delay)
        counter = ApiCallCounter()

        await searcher.search(["a", "b", "c"], counter=counter)

        assert store.calls == ["search:a", "search:b", "search:c"]
        assert counter.store_calls == 3
