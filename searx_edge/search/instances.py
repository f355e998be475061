"""
Instance Selector.

Picks an upstream SearXNG instance per request from the public health
feed (searx.space). Each feed entry is checked against a SelectionPolicy as
a pure yes/no predicate, and one qualifying instance is drawn uniformly at
random so load spreads over equally healthy peers.

Nothing is cached: the feed is fetched on every call.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse

import httpx

from searx_edge.utils.config import SelectionPolicy, SelectorConfig
from searx_edge.utils.errors import UpstreamFetchError
from searx_edge.utils.logging import get_logger

logger = get_logger(__name__)

# searx.space uptime keys per window
UPTIME_KEYS = {
    "day": "uptimeDay",
    "week": "uptimeWeek",
    "month": "uptimeMonth",
    "year": "uptimeYear",
}


def _number(value: Any) -> float | None:
    """Finite numeric feed value as float; anything else is treated as absent."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


# =============================================================================
# Data Classes
# =============================================================================


class NetworkType(str, Enum):
    """Network classification of an instance."""

    NORMAL = "normal"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> NetworkType:
        return cls.NORMAL if value == cls.NORMAL.value else cls.OTHER


@dataclass
class PhaseTiming:
    """Timing and success metrics of one probe phase (initial, search, ...)."""

    success_percentage: float | None = None
    value: float | None = None
    median: float | None = None

    @classmethod
    def from_record(cls, record: Any) -> PhaseTiming:
        record = _mapping(record)
        all_stats = _mapping(record.get("all"))
        return cls(
            success_percentage=_number(record.get("success_percentage")),
            value=_number(all_stats.get("value")),
            median=_number(all_stats.get("median")),
        )


@dataclass
class EngineCapability:
    """An engine enabled on an instance."""

    enabled: bool = True
    error_rate: float | None = None


@dataclass
class Instance:
    """A candidate upstream built from one health feed entry."""

    url: str
    network_type: NetworkType = NetworkType.OTHER
    uptime: dict[str, float] = field(default_factory=dict)
    timing: dict[str, PhaseTiming] = field(default_factory=dict)
    engines: dict[str, EngineCapability] = field(default_factory=dict)

    @property
    def base_url(self) -> str:
        """URL with a single trailing slash removed."""
        return self.url[:-1] if self.url.endswith("/") else self.url

    @property
    def hostname(self) -> str:
        """Lowercased host of the URL, or an empty string if it cannot be parsed."""
        try:
            return urlparse(self.url).hostname or ""
        except ValueError:
            return ""

    @classmethod
    def from_record(cls, url: str, record: Any) -> Instance:
        """Build an instance from a feed record, ignoring malformed metrics."""
        record = _mapping(record)

        uptime_record = _mapping(record.get("uptime"))
        uptime = {}
        for window, key in UPTIME_KEYS.items():
            value = _number(uptime_record.get(key))
            if value is not None:
                uptime[window] = value

        timing = {
            phase: PhaseTiming.from_record(stats)
            for phase, stats in _mapping(record.get("timing")).items()
        }

        engines = {
            name: EngineCapability(error_rate=_number(_mapping(stats).get("error_rate")))
            for name, stats in _mapping(record.get("engines")).items()
        }

        return cls(
            url=url,
            network_type=NetworkType.parse(record.get("network_type")),
            uptime=uptime,
            timing=timing,
            engines=engines,
        )


# =============================================================================
# Policy evaluation
# =============================================================================


def check_policy(instance: Instance, policy: SelectionPolicy) -> str | None:
    """
    Evaluate a policy against one instance.

    A metric needed by an active check but missing from the record fails
    that check.

    Returns:
        None if the instance satisfies every criterion, otherwise the name
        of the first criterion it fails.
    """
    if not instance.hostname:
        return "url"

    if instance.hostname in policy.blacklist:
        return "blacklist"

    if policy.network_type is not None and instance.network_type.value != policy.network_type:
        return "network_type"

    for window, minimum in policy.min_uptime.items():
        uptime = instance.uptime.get(window)
        if uptime is None or uptime < minimum:
            return f"uptime.{window}"

    if policy.max_initial_latency is not None:
        latency = instance.timing.get("initial", PhaseTiming()).value
        if latency is None or not latency < policy.max_initial_latency:
            return "initial_latency"

    if policy.max_search_latency is not None:
        latency = instance.timing.get("search", PhaseTiming()).median
        if latency is None or not latency < policy.max_search_latency:
            return "search_latency"

    for phase, minimum in policy.min_success.items():
        success = instance.timing.get(phase, PhaseTiming()).success_percentage
        if success is None or success < minimum:
            return f"success.{phase}"

    for engine in policy.required_engines:
        capability = instance.engines.get(engine)
        if capability is None or not capability.enabled:
            return f"engine.{engine}"
        if capability.error_rate is not None and capability.error_rate > policy.max_engine_error_rate:
            return f"engine.{engine}.error_rate"

    return None


def satisfies(instance: Instance, policy: SelectionPolicy) -> bool:
    """Check whether an instance fully satisfies a policy."""
    return check_policy(instance, policy) is None


def parse_feed(data: Any) -> list[Instance]:
    """Build instances from a decoded `instances.json` document."""
    instances = _mapping(data).get("instances")
    if not isinstance(instances, dict):
        logger.warning("Health feed has no instances mapping")
        return []
    return [Instance.from_record(url, record) for url, record in instances.items()]


# =============================================================================
# Selector
# =============================================================================


class InstanceSelector:
    """
    Selects upstream instances from the health feed.

    Usage:
        async with httpx.AsyncClient() as client:
            selector = InstanceSelector(client, settings.selector)
            instance = await selector.select_instance()
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: SelectorConfig,
        rng: random.Random | None = None,
    ):
        self._client = client
        self._config = config
        self._rng = rng or random.Random()

    @property
    def override(self) -> Instance | None:
        """Operator-provided upstream, if configured."""
        if not self._config.override_url:
            return None
        return Instance(url=self._config.override_url, network_type=NetworkType.NORMAL)

    async def fetch_instances(self) -> list[Instance]:
        """Fetch and parse the full instance directory.

        Raises:
            UpstreamFetchError: Feed unreachable, non-2xx, or not JSON.
        """
        url = self._config.feed_url
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise UpstreamFetchError(url, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise UpstreamFetchError(url, f"invalid JSON: {e}") from e

        return parse_feed(data)

    async def list_instances(self, policy: SelectionPolicy | None = None) -> list[Instance]:
        """Return every instance satisfying the policy."""
        override = self.override
        if override is not None:
            return [override]

        if policy is None:
            policy = self._config.policy

        candidates = await self.fetch_instances()
        qualifying = [instance for instance in candidates if satisfies(instance, policy)]

        logger.info(
            "Health feed evaluated",
            candidates=len(candidates),
            qualifying=len(qualifying),
        )
        return qualifying

    async def select_instance(self, policy: SelectionPolicy | None = None) -> Instance | None:
        """Pick one qualifying instance at random.

        Returns:
            The chosen instance, or None if no instance qualifies.
        """
        qualifying = await self.list_instances(policy)
        if not qualifying:
            logger.warning("No instance satisfies the selection policy")
            return None

        instance = self._rng.choice(qualifying)
        logger.info("Instance selected", instance=instance.base_url)
        return instance
