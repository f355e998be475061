"""
searx-edge utilities module.
"""

from searx_edge.utils.config import Settings, get_settings
from searx_edge.utils.errors import (
    EdgeError,
    ExtractionError,
    NoHealthyInstanceError,
    UnsupportedCategoryError,
    UpstreamFetchError,
)
from searx_edge.utils.logging import (
    LogContext,
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Errors
    "EdgeError",
    "ExtractionError",
    "NoHealthyInstanceError",
    "UnsupportedCategoryError",
    "UpstreamFetchError",
    # Logging
    "get_logger",
    "configure_logging",
    "bind_context",
    "unbind_context",
    "LogContext",
]
