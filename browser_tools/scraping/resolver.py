"""
Ordered selector resolution.

Given a list of candidate selectors for a logical field, the resolver tries
them strictly in order and keeps the first that matches anything. Later
candidates are never queried once one has matched.

Grouped records (a search result, a story row) are resolved relative to
their item containers. An item selector and its field selectors form one
strategy: the fields are resolved among the containers that item selector
matched, and if a required field matches in none of them the next item
selector is tried. Each record therefore comes from one consistent strategy
and fields from different layouts are never zipped together.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from browser_tools.errors import NoMatchError
from browser_tools.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

logger = get_logger(__name__)

_DIGITS = re.compile(r"\d+")


def parse_count(text: str | None) -> int:
    """First run of decimal digits in ``text``; 0 when there is none.

    Example:
        >>> parse_count("123 points")
        123
        >>> parse_count("discuss")
        0
    """
    if not text:
        return 0
    match = _DIGITS.search(text)
    return int(match.group()) if match else 0


class Scope:
    """A region of the page fields are looked up in."""

    def __init__(self, element: ElementHandle):
        self.element = element

    async def query(self, selector: str) -> ElementHandle | None:
        return await self.element.query_selector(selector)


class RowScope(Scope):
    """A table row plus the row that follows it.

    Forum listings put the title in one row and its metadata in the next;
    both belong to the same record. The primary row is searched first.
    """

    def __init__(self, element: ElementHandle, companion: ElementHandle | None):
        super().__init__(element)
        self.companion = companion

    async def query(self, selector: str) -> ElementHandle | None:
        found = await self.element.query_selector(selector)
        if found is None and self.companion is not None:
            found = await self.companion.query_selector(selector)
        return found

    @classmethod
    async def from_row(cls, row: ElementHandle) -> RowScope:
        handle = await row.evaluate_handle("el => el.nextElementSibling")
        return cls(row, handle.as_element())


@dataclass
class Resolution:
    """Outcome of resolving one field against the root."""

    field: str
    selector: str
    elements: list[ElementHandle]
    attempts: int


@dataclass
class ExtractedRow:
    """Field values read from one scope."""

    scope: Scope
    values: dict[str, Any]


@dataclass
class GroupResolution:
    """Selectors chosen for a grouped record.

    Attributes:
        item_selector: Container selector that matched
        scopes: One scope per matched container, in document order
        selectors: Chosen selector per field
        missing: Fields for which no candidate matched in any scope
    """

    item_selector: str
    scopes: list[Scope]
    selectors: dict[str, str] = field(default_factory=dict)
    missing: dict[str, NoMatchError] = field(default_factory=dict)

    def require(self, *fields: str) -> None:
        """Raise the NoMatchError of the first missing field among ``fields``."""
        for name in fields:
            if name in self.missing:
                raise self.missing[name]

    async def extract(
        self,
        readers: dict[str, Callable[[ElementHandle | None], Awaitable[Any]]],
        limit: int | None = None,
    ) -> list[ExtractedRow]:
        """Read every field from every scope with the chosen selectors.

        Args:
            readers: Per-field async reader; receives None when the field is
                missing from the group or from this particular scope
            limit: Stop after this many scopes
        """
        rows: list[ExtractedRow] = []
        scopes = self.scopes if limit is None else self.scopes[:limit]
        for scope in scopes:
            values: dict[str, Any] = {}
            for name, reader in readers.items():
                selector = self.selectors.get(name)
                element = await scope.query(selector) if selector else None
                values[name] = await reader(element)
            rows.append(ExtractedRow(scope=scope, values=values))
        return rows


class SelectorResolver:
    """Resolve candidate selectors against a page or element."""

    def __init__(self, root: Page | ElementHandle):
        self.root = root

    async def matches(self, field: str, candidates: Sequence[str]) -> AsyncIterator[Resolution]:
        """Yield every matching candidate in order, querying lazily.

        A candidate is only queried once the consumer asks for the next
        match, so stopping early leaves later candidates untouched.

        Raises:
            ValueError: If ``candidates`` is empty.
        """
        if not candidates:
            raise ValueError(f"no selector candidates for {field!r}")

        for attempt, selector in enumerate(candidates, start=1):
            try:
                elements = await self.root.query_selector_all(selector)
            except Exception as e:
                logger.debug("Selector query failed", field=field, selector=selector, error=str(e))
                continue
            if not elements:
                logger.debug("Selector matched nothing", field=field, selector=selector)
                continue
            if attempt > 1:
                logger.info(
                    "Fallback selector matched", field=field, selector=selector, attempt=attempt
                )
            yield Resolution(field=field, selector=selector, elements=elements, attempts=attempt)

    async def resolve(self, field: str, candidates: Sequence[str]) -> Resolution:
        """First candidate matching at least one element under the root.

        Raises:
            ValueError: If ``candidates`` is empty.
            NoMatchError: If every candidate matched nothing or failed.
        """
        async with aclosing(self.matches(field, candidates)) as found:
            async for resolution in found:
                return resolution
        raise NoMatchError(field, list(candidates))

    async def resolve_in_scopes(
        self,
        scopes: Sequence[Scope],
        field: str,
        candidates: Sequence[str],
    ) -> str:
        """First candidate that matches inside at least one scope.

        Raises:
            ValueError: If ``candidates`` is empty.
            NoMatchError: If no candidate matched in any scope.
        """
        if not candidates:
            raise ValueError(f"no selector candidates for {field!r}")

        for selector in candidates:
            try:
                for scope in scopes:
                    if await scope.query(selector) is not None:
                        return selector
            except Exception as e:
                logger.debug("Selector query failed", field=field, selector=selector, error=str(e))
        raise NoMatchError(field, list(candidates))

    async def resolve_group(
        self,
        item_field: str,
        item_candidates: Sequence[str],
        fields: dict[str, Sequence[str]],
        scope_factory: Callable[[ElementHandle], Awaitable[Scope]] | None = None,
        required: Sequence[str] = (),
    ) -> GroupResolution:
        """Resolve the item containers, then each field relative to them.

        Item candidates are tried in order. A candidate is accepted once
        every field in ``required`` matches in at least one of its
        containers; otherwise the next item candidate is tried.

        Raises:
            NoMatchError: If no item container matched, or (for the first
                item candidate that matched anything) the first required
                field that could not be resolved. Unmatched optional fields
                are collected in ``GroupResolution.missing`` instead.
        """
        failure: NoMatchError | None = None
        async with aclosing(self.matches(item_field, item_candidates)) as found:
            async for items in found:
                group = await self._resolve_fields(items, fields, scope_factory)
                unresolved = [name for name in required if name in group.missing]
                if not unresolved:
                    logger.debug(
                        "Group resolved",
                        item=items.selector,
                        items=len(group.scopes),
                        selectors=group.selectors,
                        missing=sorted(group.missing),
                    )
                    return group

                logger.info(
                    "Item selector yielded no usable records",
                    item=items.selector,
                    missing=unresolved,
                )
                if failure is None:
                    failure = group.missing[unresolved[0]]

        raise failure or NoMatchError(item_field, list(item_candidates))

    async def _resolve_fields(
        self,
        items: Resolution,
        fields: dict[str, Sequence[str]],
        scope_factory: Callable[[ElementHandle], Awaitable[Scope]] | None,
    ) -> GroupResolution:
        if scope_factory is None:
            scopes: list[Scope] = [Scope(el) for el in items.elements]
        else:
            scopes = [await scope_factory(el) for el in items.elements]

        group = GroupResolution(item_selector=items.selector, scopes=scopes)
        for name, candidates in fields.items():
            try:
                group.selectors[name] = await self.resolve_in_scopes(scopes, name, candidates)
            except NoMatchError as e:
                group.missing[name] = e
        return group


async def wait_for_any(
    page: Page,
    candidates: Sequence[str],
    timeout: float,
    *,
    field: str = "fallback_wait",
) -> str:
    """Wait until one of the candidates is visible, trying them in order.

    The timeout is shared evenly among the candidates.

    Raises:
        ValueError: If ``candidates`` is empty.
        NoMatchError: If none became visible.
    """
    if not candidates:
        raise ValueError(f"no selector candidates for {field!r}")

    per_candidate_ms = max(timeout / len(candidates), 0.1) * 1000
    for selector in candidates:
        try:
            await page.wait_for_selector(selector, state="visible", timeout=per_candidate_ms)
        except Exception as e:
            logger.debug("Wait selector failed", selector=selector, error=str(e))
            continue
        return selector
    raise NoMatchError(field, list(candidates))
