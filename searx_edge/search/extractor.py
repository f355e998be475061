"""
Markup Extractor for SearXNG result pages.

Scans the server-rendered HTML of an instance without validating it:
- the query echoed in the search box
- (engine, error) pairs from the engine status table
- one raw capture per result block of the requested category

Result blocks are recovered as a fold over a lazy sequence of markup
events. A block-start event commits the block being built and opens a new
one, and field events append to the open block. Appending (never
overwriting) keeps fields that the markup splits across several text nodes
or child elements intact.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from bs4 import BeautifulSoup, Tag

from searx_edge.search.extractor_config import (
    CategoryProfile,
    ExtractorConfig,
    get_extractor_config,
    normalize_text,
)
from searx_edge.utils.errors import EdgeError, ExtractionError
from searx_edge.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


class EventKind(Enum):
    BLOCK_START = "block_start"
    FIELD = "field"


@dataclass(frozen=True)
class MarkupEvent:
    """A single event of the markup stream."""

    kind: EventKind
    name: str | None = None
    value: str | None = None

    @classmethod
    def block_start(cls) -> MarkupEvent:
        return cls(EventKind.BLOCK_START)

    @classmethod
    def capture(cls, name: str, value: str) -> MarkupEvent:
        return cls(EventKind.FIELD, name, value)


@dataclass
class RawBlock:
    """Raw field captures of one result block, fragments in document order."""

    fragments: dict[str, list[str]] = field(default_factory=dict)

    def append(self, name: str, value: str) -> None:
        self.fragments.setdefault(name, []).append(value)

    def text(self, name: str) -> str:
        """All fragments of a field concatenated, whitespace-normalized."""
        return normalize_text("".join(self.fragments.get(name, [])))

    def first(self, name: str) -> str | None:
        """First captured value of a field, or None when absent."""
        values = self.fragments.get(name)
        return values[0] if values else None

    def values(self, name: str) -> list[str]:
        """Each captured value of a field, normalized, empties dropped."""
        normalized = (normalize_text(v) for v in self.fragments.get(name, []))
        return [v for v in normalized if v]


@dataclass
class ExtractedPage:
    """Everything recovered from one result page."""

    category: str
    query: str = ""
    unresponsive_engines: list[tuple[str, str]] = field(default_factory=list)
    blocks: list[RawBlock] = field(default_factory=list)


# =============================================================================
# Event stream and fold
# =============================================================================


def iter_events(soup: BeautifulSoup, profile: CategoryProfile) -> Iterator[MarkupEvent]:
    """Yield markup events for every result block of a profile."""
    for block in soup.select(profile.block_selector):
        yield MarkupEvent.block_start()
        for element in block.descendants:
            if not isinstance(element, Tag):
                continue
            for spec in profile.fields:
                if not spec.matches(element):
                    continue
                value = spec.read(element)
                if value is not None:
                    yield MarkupEvent.capture(spec.name, value)


def fold_blocks(events: Iterable[MarkupEvent]) -> list[RawBlock]:
    """Fold a markup event stream into raw blocks.

    Field events seen before the first block start belong to no block and
    are dropped.
    """
    blocks: list[RawBlock] = []
    current: RawBlock | None = None

    for event in events:
        if event.kind is EventKind.BLOCK_START:
            if current is not None:
                blocks.append(current)
            current = RawBlock()
        elif current is not None and event.name is not None and event.value is not None:
            current.append(event.name, event.value)

    if current is not None:
        blocks.append(current)

    return blocks


# =============================================================================
# Document-level fields
# =============================================================================


def extract_query(soup: BeautifulSoup, config: ExtractorConfig) -> str:
    """Current value of the search box, or an empty string."""
    element = soup.select_one(config.query.selector)
    if element is None:
        return ""
    value = element.get(config.query.attr)
    return str(value) if isinstance(value, str) else ""


def extract_unresponsive_engines(
    soup: BeautifulSoup,
    config: ExtractorConfig,
) -> list[tuple[str, str]]:
    """(engine, error) pairs from the engine status table.

    Each row yields at most one pair and nothing carries over between rows.
    """
    selectors = config.engine_status
    table = soup.select_one(selectors.table)
    if table is None:
        return []

    pairs = []
    for row in table.select(selectors.row):
        name_cell = row.select_one(selectors.name)
        error_cell = row.select_one(selectors.error)
        if name_cell is None or error_cell is None:
            continue
        name = normalize_text(name_cell.get_text())
        error = normalize_text(error_cell.get_text())
        if name and error:
            pairs.append((name, error))
    return pairs


# =============================================================================
# Entry point
# =============================================================================


def extract(
    html: str,
    category: str = "general",
    config: ExtractorConfig | None = None,
) -> ExtractedPage:
    """
    Extract raw captures from a SearXNG HTML result page.

    Args:
        html: Page markup as returned by the instance.
        category: Result category whose profile is applied.
        config: Extraction profiles; the shared configuration when None.

    Returns:
        ExtractedPage with the query, engine errors and raw blocks.

    Raises:
        UnsupportedCategoryError: No profile exists for the category.
        ExtractionError: The document cannot be scanned at all.
    """
    if config is None:
        config = get_extractor_config()

    profile = config.get_profile(category)

    try:
        soup = BeautifulSoup(html, "html.parser")
        if soup.find() is None:
            raise ExtractionError("Document contains no markup elements")

        page = ExtractedPage(
            category=profile.category,
            query=extract_query(soup, config),
            unresponsive_engines=extract_unresponsive_engines(soup, config),
            blocks=fold_blocks(iter_events(soup, profile)),
        )
    except EdgeError:
        raise
    except Exception as e:
        logger.error("Result extraction failed", category=profile.category, error=str(e))
        raise ExtractionError(f"Extraction failed: {e}") from e

    logger.debug(
        "Extracted result page",
        category=page.category,
        blocks=len(page.blocks),
        unresponsive_engines=len(page.unresponsive_engines),
    )
    return page
