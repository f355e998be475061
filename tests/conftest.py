"""
Pytest fixtures and configuration for searx-edge tests.

Markers:
- @pytest.mark.unit: Single function/class, no I/O (default for unmarked tests)
- @pytest.mark.integration: The aiohttp application end to end, with all
  outbound HTTP served by httpx.MockTransport

Network access is never needed: the health feed and the upstream instances
are always mocked.
"""

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

# Set test environment before importing anything else
os.environ["SEARX_EDGE_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")

from searx_edge.search.extractor_config import reset_extractor_config  # noqa: E402
from searx_edge.utils.config import (  # noqa: E402
    ProxyConfig,
    SelectorConfig,
    Settings,
    get_settings,
)

FEED_URL = "https://searx.space/data/instances.json"


def pytest_configure(config):
    """Register classification markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests with no external dependencies (fast, <1s/test)"
    )
    config.addinivalue_line(
        "markers", "integration: Application tests with mocked outbound HTTP"
    )


def pytest_collection_modifyitems(config, items):
    """Tests without a classification marker are unit tests."""
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached configuration around each test."""
    get_settings.cache_clear()
    reset_extractor_config()
    yield
    get_settings.cache_clear()
    reset_extractor_config()


# =============================================================================
# HTML fixtures
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Get path to the HTML fixtures directory."""
    return Path(__file__).parent / "fixtures" / "searx_html"


@pytest.fixture
def general_html(fixtures_dir: Path) -> str:
    """SearXNG general results page with three results."""
    return (fixtures_dir / "general_results.html").read_text(encoding="utf-8")


@pytest.fixture
def images_html(fixtures_dir: Path) -> str:
    """SearXNG image results page with two results."""
    return (fixtures_dir / "images_results.html").read_text(encoding="utf-8")


# =============================================================================
# Health feed fixtures
# =============================================================================


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def make_record(**overrides: Any) -> dict[str, Any]:
    """A searx.space instance record that passes the default policy."""
    record: dict[str, Any] = {
        "network_type": "normal",
        "version": "2024.5.1",
        "uptime": {
            "uptimeDay": 100,
            "uptimeWeek": 99.8,
            "uptimeMonth": 99.1,
            "uptimeYear": 97.5,
        },
        "timing": {
            "initial": {"success_percentage": 100, "all": {"value": 0.42}},
            "search": {"success_percentage": 100, "all": {"median": 0.61, "stdev": 0.12}},
            "search_go": {"success_percentage": 100, "all": {"median": 0.83}},
        },
        "engines": {
            "google": {"error_rate": 0},
            "bing": {},
            "duckduckgo": {"error_rate": 4},
        },
    }
    return _deep_update(record, overrides)


@pytest.fixture
def record_factory() -> Callable[..., dict[str, Any]]:
    return make_record


@pytest.fixture
def mixed_feed() -> dict[str, Any]:
    """Two qualifying instances and several disqualified ones."""
    return {
        "instances": {
            "https://good-one.example/": make_record(),
            "https://good-two.example/": make_record(),
            "https://slow.example/": make_record(timing={"search": {"all": {"median": 1.7}}}),
            "https://tor.example/": make_record(network_type="tor"),
            "https://flaky.example/": make_record(uptime={"uptimeDay": 96.5}),
            "https://searx.be/": make_record(),
            "https://broken.example/": "not a record",
        }
    }


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of config files."""
    return Settings(
        proxy=ProxyConfig(redirect_url="https://fallback.example/help"),
        selector=SelectorConfig(feed_url=FEED_URL),
    )
