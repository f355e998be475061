"""
Pydantic models for the normalized result document.

Field names and nesting follow the SearXNG JSON API so downstream consumers
written against `format=json` can read the proxy's output unchanged.
"""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ParsedUrl = tuple[str, str, str, str, str, str]

EMPTY_PARSED_URL: ParsedUrl = ("", "", "", "", "", "")


class BaseResult(BaseModel):
    """Fields shared by every result category."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    url: str = ""
    title: str = ""
    content: str = ""
    published_date: str | None = Field(default=None, alias="publishedDate")
    thumbnail: str | None = None
    engine: str = ""
    template: str = "default.html"
    parsed_url: ParsedUrl = EMPTY_PARSED_URL
    img_src: str = ""
    priority: str = ""
    engines: list[str] = Field(default_factory=list)
    positions: list[int] = Field(default_factory=list)
    score: float = 0.0

    @property
    def position(self) -> int:
        """First (and only) rank position of this result."""
        return self.positions[0] if self.positions else 0


class GeneralResult(BaseResult):
    """A web result from the `general` category."""

    category: Literal["general"] = "general"


class ImageResult(BaseResult):
    """An image result from the `images` category."""

    template: str = "images.html"
    category: Literal["images"] = "images"
    thumbnail_src: str = ""
    author: str = ""
    source: str = ""
    resolution: str = ""
    filesize: str = ""
    img_format: str = ""


SearchResult = Annotated[GeneralResult | ImageResult, Field(discriminator="category")]


class ResultDocument(BaseModel):
    """
    Output envelope of a proxied search.

    `number_of_results` is a placeholder (always 0) and answers, corrections,
    infoboxes and suggestions are never extracted from the HTML page.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    proxy: str | None = Field(default=None, description="Upstream URL actually queried")
    query: str = ""
    number_of_results: int = 0
    results: list[SearchResult] = Field(default_factory=list)
    answers: list[Any] = Field(default_factory=list)
    corrections: list[Any] = Field(default_factory=list)
    infoboxes: list[Any] = Field(default_factory=list)
    suggestions: list[Any] = Field(default_factory=list)
    unresponsive_engines: list[tuple[str, str]] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        data = self.model_dump(mode="json", by_alias=True)
        if self.proxy is None:
            data.pop("proxy")
        return data

    def to_json(self) -> str:
        """Serialize as the response body.

        Non-ASCII characters are emitted as \\uXXXX escapes.
        """
        return json.dumps(self.to_dict(), ensure_ascii=True)
