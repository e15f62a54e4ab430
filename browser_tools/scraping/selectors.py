"""
Selector candidate configuration.

Site layouts change without notice, so every logical field (result title,
story score, ...) is described by an ordered list of CSS selectors. The
built-in lists below can be overridden from a JSON file:

    {
      "google_search": {"title": ["h3", "h3.LC20lb"], ...},
      "hacker_news": {"score": [".score"], ...}
    }

Missing groups and missing or empty fields fall back to the built-in
candidates field by field. Malformed JSON is an error.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from browser_tools.errors import SelectorConfigError
from browser_tools.utils.logging import get_logger

logger = get_logger(__name__)


def validate_selector_syntax(selector: str) -> str:
    """Reject selectors that can never be valid CSS for querySelectorAll.

    Returns:
        The stripped selector

    Raises:
        ValueError: For empty selectors, ``..`` or XPath expressions.
    """
    selector = selector.strip()
    if not selector:
        raise ValueError("selector cannot be empty")
    if ".." in selector:
        raise ValueError(f"invalid selector (contains '..'): {selector}")
    if selector.startswith("/"):
        raise ValueError(f"XPath is not supported, use CSS: {selector}")
    return selector


class _CandidateGroup(BaseModel):
    """Base for a group of selector candidate lists."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_empty_fields(cls, data: Any) -> Any:
        """Empty or null fields fall back to the defaults."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v not in (None, [], "")}
        return data

    @field_validator("*", mode="after")
    @classmethod
    def validate_candidates(cls, v: list[str]) -> list[str]:
        return [validate_selector_syntax(s) for s in v]


class GoogleSearchSelectors(_CandidateGroup):
    """Candidates for Google result pages."""

    search_container: list[str] = Field(
        default_factory=lambda: ["div#search", "div#rso", "div.g"]
    )
    result_item: list[str] = Field(default_factory=lambda: ["div.g", "div.rc", "div.Gx5Zad"])
    title: list[str] = Field(default_factory=lambda: ["h3", "h3.LC20lb", "div.v9i61e"])
    url: list[str] = Field(default_factory=lambda: ["a[href]", "a[ping]", "a"])
    snippet: list[str] = Field(
        default_factory=lambda: ["div.VwiC3b", "div.s", "div.BNeawe", ".IsZvec"]
    )
    fallback_wait: list[str] = Field(default_factory=lambda: ["div#search", "div.g", "body"])


class HackerNewsSelectors(_CandidateGroup):
    """Candidates for the Hacker News front page.

    ``item`` selects the story row; fields are looked up in that row and in
    the metadata row that follows it.
    """

    main_table: list[str] = Field(
        default_factory=lambda: ["table.itemlist", "table#hnmain", "table"]
    )
    item: list[str] = Field(default_factory=lambda: ["tr.athing", "tr.athing.submission"])
    title_link: list[str] = Field(
        default_factory=lambda: ["span.titleline > a", "a.storylink", "td.title > a"]
    )
    score: list[str] = Field(default_factory=lambda: [".score", ".subtext .score"])
    author: list[str] = Field(
        default_factory=lambda: [".hnuser", ".subtext a.hnuser", 'td.subtext a[href*="user?id="]']
    )
    time: list[str] = Field(
        default_factory=lambda: ["span.age", "span.age a", ".subtext span.age a"]
    )
    comments: list[str] = Field(
        default_factory=lambda: [
            "span.subline > a:last-child",
            "td.subtext > a:last-child",
            'a[href*="item?id="]',
        ]
    )
    fallback_wait: list[str] = Field(default_factory=lambda: ["#hnmain", "table.itemlist", "body"])


class SelectorConfig(BaseModel):
    """Root of the selector configuration file."""

    model_config = ConfigDict(extra="ignore")

    google_search: GoogleSearchSelectors = Field(default_factory=GoogleSearchSelectors)
    hacker_news: HackerNewsSelectors = Field(default_factory=HackerNewsSelectors)

    @model_validator(mode="before")
    @classmethod
    def drop_null_groups(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def load_selector_config(path: str | Path | None) -> SelectorConfig:
    """Load selector candidates, merged field by field with the defaults.

    Args:
        path: JSON file; None or a missing file yields the defaults

    Raises:
        SelectorConfigError: If the file exists but cannot be read or parsed.
    """
    if path is None:
        return SelectorConfig()

    path = Path(path).expanduser()
    if not path.exists():
        logger.debug("Selector config not found, using defaults", path=str(path))
        return SelectorConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SelectorConfigError(str(path), str(e)) from e

    if not isinstance(data, dict):
        raise SelectorConfigError(str(path), "top level must be an object")

    try:
        config = SelectorConfig.model_validate(data)
    except ValidationError as e:
        raise SelectorConfigError(str(path), str(e)) from e

    logger.debug("Selector config loaded", path=str(path))
    return config


def save_selector_config(config: SelectorConfig, path: str | Path) -> Path:
    """Write the configuration as indented JSON."""
    path = Path(path).expanduser()
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2) + "\n", encoding="utf-8")
    os.chmod(path, 0o644)
    logger.info("Selector config written", path=str(path))
    return path
