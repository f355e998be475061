"""
Outbound requests to the selected instance.
"""

from collections.abc import Iterable, Mapping

import httpx
from aiohttp import web

from searx_edge.utils.errors import UpstreamFetchError
from searx_edge.utils.logging import get_logger

logger = get_logger(__name__)

# Not forwarded upstream; httpx negotiates its own encoding
REQUEST_SKIP_HEADERS = frozenset(
    {"host", "connection", "transfer-encoding", "content-length", "accept-encoding"}
)
# Not relayed back; the body is already decoded by httpx
RESPONSE_SKIP_HEADERS = frozenset(
    {"connection", "transfer-encoding", "content-encoding", "content-length"}
)


def build_search_params(
    params: Iterable[tuple[str, str]],
    *,
    strip_engines: bool,
    default_category: str,
) -> list[tuple[str, str]]:
    """
    Rewrite inbound search parameters for the upstream HTML endpoint.

    - `format` is forced to `html` (first occurrence replaced, others dropped)
    - `engines` is removed when strip_engines is set
    - `categories` defaults to default_category when missing or empty

    Args:
        params: Inbound (key, value) pairs in order.
        strip_engines: Whether to drop the `engines` parameter.
        default_category: Category used when none is given.

    Returns:
        Outbound (key, value) pairs.
    """
    result: list[tuple[str, str]] = []
    has_format = False
    for key, value in params:
        if key == "format":
            if not has_format:
                result.append(("format", "html"))
                has_format = True
            continue
        if key == "engines" and strip_engines:
            continue
        result.append((key, value))

    if not has_format:
        result.append(("format", "html"))

    if not any(key == "categories" and value for key, value in result):
        result = [(k, v) for k, v in result if k != "categories"]
        result.append(("categories", default_category))

    return result


def category_of(params: Iterable[tuple[str, str]]) -> str:
    """Category requested by outbound parameters (first non-empty value)."""
    for key, value in params:
        if key == "categories" and value:
            return value
    return ""


def forward_headers(headers: Mapping[str, str], accept: str | None = None) -> dict[str, str]:
    """Copy inbound headers minus hop-by-hop ones, optionally forcing Accept."""
    forwarded = {
        key: value for key, value in headers.items() if key.lower() not in REQUEST_SKIP_HEADERS
    }
    if accept is not None:
        forwarded = {k: v for k, v in forwarded.items() if k.lower() != "accept"}
        forwarded["Accept"] = accept
    return forwarded


async def fetch_upstream(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes | None = None,
) -> httpx.Response:
    """
    Send one request to the selected instance.

    Raises:
        UpstreamFetchError: On any transport-level failure.
    """
    logger.debug("Forwarding request", method=method, target=url)
    try:
        response = await client.request(
            method=method,
            url=url,
            headers=dict(headers),
            content=body if body else None,
        )
    except httpx.HTTPError as e:
        raise UpstreamFetchError(url, str(e) or type(e).__name__) from e

    logger.info(
        "Upstream responded",
        target=url,
        status=response.status_code,
        content_type=response.headers.get("content-type", ""),
    )
    return response


def relay_response(response: httpx.Response) -> web.Response:
    """Return an upstream response to the caller unmodified."""
    headers = {
        key: value
        for key, value in response.headers.items()
        if key.lower() not in RESPONSE_SKIP_HEADERS
    }
    return web.Response(
        status=response.status_code,
        headers=headers,
        body=response.content,
    )
