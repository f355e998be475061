"""
searx-edge search module.

Instance selection:
    InstanceSelector - Health feed fetch, policy filtering, random pick
    check_policy() / satisfies() - Per-instance policy predicate

Extraction:
    extract() - Raw captures from a SearXNG HTML result page
    get_extractor_config() - Per-category extraction profiles

Normalization:
    build_document() - ResultDocument from an extracted page
    decompose() - Six-slot parsed_url tuple
"""

from searx_edge.search.extractor import (
    ExtractedPage,
    MarkupEvent,
    RawBlock,
    extract,
    fold_blocks,
    iter_events,
)
from searx_edge.search.extractor_config import (
    ExtractorConfig,
    get_extractor_config,
    reset_extractor_config,
    split_label,
)
from searx_edge.search.instances import (
    Instance,
    InstanceSelector,
    NetworkType,
    check_policy,
    satisfies,
)
from searx_edge.search.models import (
    GeneralResult,
    ImageResult,
    ResultDocument,
    SearchResult,
)
from searx_edge.search.normalizer import build_document, normalize_blocks
from searx_edge.search.url_parts import decompose

__all__ = [
    # Selection
    "Instance",
    "InstanceSelector",
    "NetworkType",
    "check_policy",
    "satisfies",
    # Extraction
    "ExtractedPage",
    "ExtractorConfig",
    "MarkupEvent",
    "RawBlock",
    "extract",
    "fold_blocks",
    "iter_events",
    "get_extractor_config",
    "reset_extractor_config",
    "split_label",
    # Normalization
    "GeneralResult",
    "ImageResult",
    "ResultDocument",
    "SearchResult",
    "build_document",
    "normalize_blocks",
    "decompose",
]
