"""
Result Normalizer.

Turns the raw block captures of the extractor into SearXNG-shaped results:
positions count from 1 in document order and score is 1/position.
"""

from __future__ import annotations

from collections.abc import Iterable

from searx_edge.search.extractor import ExtractedPage, RawBlock
from searx_edge.search.extractor_config import (
    CategoryProfile,
    ExtractorConfig,
    get_extractor_config,
)
from searx_edge.search.models import (
    BaseResult,
    GeneralResult,
    ImageResult,
    ResultDocument,
)
from searx_edge.search.url_parts import decompose
from searx_edge.utils.errors import UnsupportedCategoryError


def _distinct(values: Iterable[str]) -> list[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(values))


def _engine_names(block: RawBlock, profile: CategoryProfile) -> list[str]:
    """Engines of a block: one per match for `multiple` fields, else one joined value."""
    spec = profile.get_field("engines")
    if spec is not None and not spec.multiple:
        joined = block.text("engines")
        return [joined] if joined else []
    return _distinct(block.values("engines"))


def _common_fields(block: RawBlock, position: int, profile: CategoryProfile) -> dict:
    url = block.first("url") or ""
    engines = _engine_names(block, profile)
    return {
        "url": url,
        "parsed_url": decompose(url),
        "title": block.text("title"),
        "content": block.text("content"),
        "engine": engines[0] if engines else "",
        "engines": engines,
        "positions": [position],
        "score": 1 / position,
    }


def _general_result(
    block: RawBlock, position: int, profile: CategoryProfile
) -> GeneralResult:
    return GeneralResult(
        **_common_fields(block, position, profile),
        published_date=block.first("published_date") or None,
    )


def _image_result(block: RawBlock, position: int, profile: CategoryProfile) -> ImageResult:
    thumbnail_src = block.first("thumbnail_src") or ""
    return ImageResult(
        **_common_fields(block, position, profile),
        img_src=block.first("img_src") or "",
        thumbnail_src=thumbnail_src,
        thumbnail=thumbnail_src or None,
        author=block.text("author"),
        source=block.text("source"),
        resolution=block.text("resolution"),
        filesize=block.text("filesize"),
        img_format=block.text("img_format"),
    )


_BUILDERS = {
    "general": _general_result,
    "images": _image_result,
}


def normalize_blocks(
    blocks: Iterable[RawBlock],
    category: str,
    start: int = 1,
    config: ExtractorConfig | None = None,
) -> list[BaseResult]:
    """
    Build one result per raw block, in document order.

    Args:
        blocks: Raw captures from the extractor.
        category: Result category of the blocks.
        start: Position of the first block (must be >= 1).
        config: Extraction profiles; the shared configuration when None.

    Returns:
        Results with positions start, start+1, ... and score 1/position.
    """
    if start < 1:
        raise ValueError("Positions start at 1")

    builder = _BUILDERS.get(category)
    if builder is None:
        raise UnsupportedCategoryError(category, sorted(_BUILDERS))

    if config is None:
        config = get_extractor_config()
    profile = config.get_profile(category)

    return [
        builder(block, position, profile)
        for position, block in enumerate(blocks, start=start)
    ]


def build_document(
    page: ExtractedPage,
    proxy: str | None = None,
    config: ExtractorConfig | None = None,
) -> ResultDocument:
    """Assemble the response envelope for an extracted page."""
    return ResultDocument(
        proxy=proxy,
        query=page.query,
        results=normalize_blocks(page.blocks, page.category, config=config),
        unresponsive_engines=page.unresponsive_engines,
    )
