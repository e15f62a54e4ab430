"""
Records produced by extraction jobs.

Serialized with ``model_dump(by_alias=True)`` so JSON output keeps the
public field names (``hnUrl``).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchResult(BaseModel):
    """One organic search result."""

    title: str
    link: str
    snippet: str = ""
    content: str | None = None

    def to_output(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HnSubmission(BaseModel):
    """One Hacker News front-page story."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    url: str
    points: int = 0
    author: str = ""
    time: str = ""
    comments: int = 0
    hn_url: str = Field(default="", alias="hnUrl")

    def to_output(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Rect(BaseModel):
    """Bounding client rect of an element."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0


class ElementInfo(BaseModel):
    """Description of a picked DOM element."""

    tag: str
    text: str = ""
    attrs: dict[str, str] = Field(default_factory=dict)
    rect: Rect = Field(default_factory=Rect)
    children: list["ElementInfo"] = Field(default_factory=list)

    def to_output(self) -> dict[str, Any]:
        return self.model_dump()


class PageContent(BaseModel):
    """Result of the ``content`` command."""

    title: str
    content: str
    format: str
    url: str

    def to_output(self) -> dict[str, Any]:
        return self.model_dump()
