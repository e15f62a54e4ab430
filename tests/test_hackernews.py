"""
Tests for Hacker News front page extraction.

Story rows are faked as (row, metadata row) pairs, the way the real page
lays them out.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-H-01 | Two stories with metadata | Normal | All fields, hnUrl from row id | |
| TC-H-02 | Self post (relative href), no score | Boundary | Absolute URL, points=0 | |
| TC-H-03 | limit=1 | Normal | One story | |
| TC-H-04 | No story rows | Abnormal | NoMatchError(item) | |
| TC-H-05 | Rows but no title links | Abnormal | NoMatchError(title_link) | |
| TC-H-06 | Page never renders | Abnormal | NoMatchError(fallback_wait) | |
| TC-H-07 | Legacy a.storylink markup | Normal | Extracted via fallback | Layout drift |
| TC-H-08 | Output keys | Normal | hnUrl alias | |
| TC-H-09 | Current front page | Normal | #hnmain waited on first | |
| TC-H-10 | limit=0 | Abnormal | ValueError before navigation | |
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from browser_tools.errors import NoMatchError
from browser_tools.scraping.hackernews import HN_URL, scrape_front_page


def _story(
    element_factory,
    story_id: str,
    title: str,
    href: str,
    *,
    score: str | None = "118 points",
    author: str | None = "pg",
    age_title: str = "2024-05-01T10:00:00",
    comments: str | None = "45\xa0comments",
    title_selector: str = "span.titleline > a",
):
    """Story row plus its metadata row, wired through nextElementSibling."""
    row = element_factory(
        attrs={"id": story_id},
        children={title_selector: element_factory(title, attrs={"href": href})},
    )
    meta_children = {"span.age": element_factory("3 hours ago", attrs={"title": age_title})}
    if score is not None:
        meta_children[".score"] = element_factory(score)
    if author is not None:
        meta_children[".hnuser"] = element_factory(author)
    if comments is not None:
        meta_children["span.subline > a:last-child"] = element_factory(comments)
    meta = element_factory(children=meta_children)

    handle = MagicMock()
    handle.as_element.return_value = meta
    row.evaluate_handle = AsyncMock(return_value=handle)
    return row


def _front_page(page, rows: list, item_selector: str = "tr.athing") -> None:
    table = AsyncMock()
    table.query_selector_all = AsyncMock(
        side_effect=lambda sel: rows if sel == item_selector else []
    )
    page.query_selector_all = AsyncMock(
        side_effect=lambda sel: [table] if sel == "table#hnmain" else []
    )


class TestScrapeFrontPage:
    @pytest.mark.asyncio
    async def test_stories(self, mock_session, mock_page, element_factory, settings):
        """TC-H-01"""
        _front_page(
            mock_page,
            [
                _story(element_factory, "4001", "Show HN: A thing", "https://example.com/thing"),
                _story(
                    element_factory,
                    "4002",
                    "Rust in 2024",
                    "https://blog.example.org/rust",
                    score="7 points",
                    author="alice",
                    comments="discuss",
                ),
            ],
        )

        stories = await scrape_front_page(mock_session, settings=settings)

        assert mock_page.goto.await_args.args[0] == HN_URL
        first, second = stories
        assert first.id == "4001"
        assert first.title == "Show HN: A thing"
        assert first.url == "https://example.com/thing"
        assert first.points == 118
        assert first.author == "pg"
        assert first.time == "2024-05-01T10:00:00"
        assert first.comments == 45
        assert first.hn_url == "https://news.ycombinator.com/item?id=4001"
        assert (second.points, second.author, second.comments) == (7, "alice", 0)

    @pytest.mark.asyncio
    async def test_self_post_without_score(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-H-02"""
        _front_page(
            mock_page,
            [
                _story(element_factory, "4001", "First", "https://example.com/"),
                _story(
                    element_factory,
                    "4003",
                    "Ask HN: Anyone?",
                    "item?id=4003",
                    score=None,
                    author=None,
                    comments=None,
                ),
            ],
        )

        stories = await scrape_front_page(mock_session, settings=settings)

        ask = stories[1]
        assert ask.url == "https://news.ycombinator.com/item?id=4003"
        assert ask.points == 0
        assert ask.author == ""
        assert ask.comments == 0

    @pytest.mark.asyncio
    async def test_limit(self, mock_session, mock_page, element_factory, settings):
        """TC-H-03"""
        _front_page(
            mock_page,
            [
                _story(element_factory, str(4000 + i), f"Story {i}", f"https://e.com/{i}")
                for i in range(5)
            ],
        )

        stories = await scrape_front_page(mock_session, limit=1, settings=settings)

        assert [s.title for s in stories] == ["Story 0"]

    @pytest.mark.asyncio
    async def test_no_rows(self, mock_session, mock_page, settings):
        """TC-H-04"""
        _front_page(mock_page, [])

        with pytest.raises(NoMatchError) as exc_info:
            await scrape_front_page(mock_session, settings=settings)

        assert exc_info.value.field == "item"

    @pytest.mark.asyncio
    async def test_no_titles(self, mock_session, mock_page, element_factory, settings):
        """TC-H-05"""
        row = _story(
            element_factory, "4001", "x", "https://e.com", title_selector="span.unknown > a"
        )
        _front_page(mock_page, [row])

        with pytest.raises(NoMatchError) as exc_info:
            await scrape_front_page(mock_session, settings=settings)

        assert exc_info.value.field == "title_link"

    @pytest.mark.asyncio
    async def test_page_never_renders(self, mock_session, mock_page, settings):
        """TC-H-06"""
        mock_page.wait_for_selector = AsyncMock(side_effect=TimeoutError("Timeout exceeded"))

        with pytest.raises(NoMatchError) as exc_info:
            await scrape_front_page(mock_session, settings=settings)

        assert exc_info.value.field == "fallback_wait"

    @pytest.mark.asyncio
    async def test_legacy_markup(self, mock_session, mock_page, element_factory, settings):
        """TC-H-07"""
        _front_page(
            mock_page,
            [
                _story(
                    element_factory,
                    "4001",
                    "Old layout",
                    "https://example.com/",
                    title_selector="a.storylink",
                )
            ],
        )

        stories = await scrape_front_page(mock_session, settings=settings)

        assert stories[0].title == "Old layout"

    @pytest.mark.asyncio
    async def test_output_alias(self, mock_session, mock_page, element_factory, settings):
        """TC-H-08"""
        _front_page(mock_page, [_story(element_factory, "4001", "T", "https://e.com/")])

        stories = await scrape_front_page(mock_session, settings=settings)

        output = stories[0].to_output()
        assert output["hnUrl"] == "https://news.ycombinator.com/item?id=4001"
        assert sorted(output) == [
            "author", "comments", "hnUrl", "id", "points", "time", "title", "url"
        ]

    @pytest.mark.asyncio
    async def test_waits_for_current_layout_first(
        self, mock_session, mock_page, element_factory, settings
    ):
        """TC-H-09"""
        _front_page(mock_page, [_story(element_factory, "4001", "T", "https://e.com/")])

        await scrape_front_page(mock_session, settings=settings)

        assert mock_page.wait_for_selector.await_args_list[0].args[0] == "#hnmain"
        assert mock_page.wait_for_selector.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_limit(self, mock_session, mock_page, settings):
        """TC-H-10"""
        with pytest.raises(ValueError, match="limit must be >= 1"):
            await scrape_front_page(mock_session, limit=0, settings=settings)

        mock_page.goto.assert_not_awaited()
