"""
searx-edge Proxy Server.

Stateless edge proxy in front of public SearXNG instances.

Routes:
  /search -> healthy instance's HTML results, rewritten to JSON
  /config -> raw passthrough of the instance's /config
  /list   -> qualifying instances from the health feed
  *       -> 401 Unauthorized with a refresh to the fallback page

Every request selects its own upstream; nothing is cached or shared between
requests except the pooled HTTP client.
"""

import asyncio
import functools
import signal
import uuid
from urllib.parse import urlencode

import httpx
from aiohttp import web

from searx_edge.proxy.upstream import (
    build_search_params,
    category_of,
    fetch_upstream,
    forward_headers,
    relay_response,
)
from searx_edge.search.extractor import extract
from searx_edge.search.extractor_config import get_extractor_config
from searx_edge.search.instances import Instance, InstanceSelector
from searx_edge.search.normalizer import build_document
from searx_edge.utils.config import ProxyConfig, Settings, get_settings
from searx_edge.utils.errors import (
    ExtractionError,
    NoHealthyInstanceError,
    UnsupportedCategoryError,
    UpstreamFetchError,
)
from searx_edge.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

SETTINGS_KEY = web.AppKey("settings", Settings)
CLIENT_KEY = web.AppKey("http_client", httpx.AsyncClient)
TRANSPORT_KEY = web.AppKey("http_transport", httpx.AsyncBaseTransport)


def unauthorized_response(config: ProxyConfig) -> web.Response:
    """Fixed 401 page that refreshes to the fallback URL."""
    redirect = config.redirect_url
    return web.Response(
        status=401,
        text="Unauthorized",
        content_type="text/html",
        headers={
            "Location": redirect,
            "Refresh": f"{config.refresh_seconds}; url={redirect}",
        },
    )


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Bind request context and map proxy errors to responses."""
    config = request.app[SETTINGS_KEY].proxy

    with LogContext(request_id=uuid.uuid4().hex[:12], method=request.method, path=request.path):
        try:
            return await handler(request)
        except (NoHealthyInstanceError, UnsupportedCategoryError) as e:
            logger.warning("Request rejected", **e.to_dict())
            return unauthorized_response(config)
        except UpstreamFetchError as e:
            logger.error("Upstream fetch failed", **e.to_dict())
            return web.Response(status=502, text=f"Error thrown {e.message}")


async def _select(request: web.Request) -> Instance:
    """Select an upstream for this request or raise NoHealthyInstanceError."""
    settings = request.app[SETTINGS_KEY]
    selector = InstanceSelector(request.app[CLIENT_KEY], settings.selector)
    instance = await selector.select_instance()
    if instance is None:
        raise NoHealthyInstanceError()
    return instance


async def _inbound_params(request: web.Request) -> tuple[list[tuple[str, str]], bytes]:
    """Search parameters from the query string, plus the raw body of a POST.

    A POST body is forwarded unchanged and never read for parameters.
    """
    params = list(request.query.items())
    if request.method != "POST":
        return params, b""
    return params, await request.read()


async def handle_search(request: web.Request) -> web.StreamResponse:
    """Proxy a search and rewrite the HTML results into JSON."""
    settings = request.app[SETTINGS_KEY]
    config = settings.proxy

    if request.method not in ("GET", "POST"):
        return unauthorized_response(config)

    inbound, body = await _inbound_params(request)
    if not inbound:
        return unauthorized_response(config)

    params = build_search_params(
        inbound,
        strip_engines=config.strip_engines,
        default_category=config.default_category,
    )
    category = category_of(params)
    extractor_config = get_extractor_config()
    extractor_config.get_profile(category)

    instance = await _select(request)
    target = f"{instance.base_url}{request.path}?{urlencode(params)}"

    response = await fetch_upstream(
        request.app[CLIENT_KEY],
        request.method,
        target,
        forward_headers(request.headers, accept="text/html"),
        body,
    )

    try:
        page = extract(response.text, category, extractor_config)
        document = build_document(page, proxy=target, config=extractor_config)
    except ExtractionError as e:
        logger.warning(
            "Returning raw upstream response",
            target=target,
            status=response.status_code,
            error=e.message,
        )
        return relay_response(response)

    logger.info(
        "Search proxied",
        instance=instance.base_url,
        category=category,
        results=len(document.results),
        unresponsive_engines=len(document.unresponsive_engines),
    )
    return web.Response(
        text=document.to_json(),
        content_type="application/json",
        headers={"Access-Control-Allow-Origin": "*"},
    )


async def handle_config(request: web.Request) -> web.StreamResponse:
    """Pass the instance's /config through unchanged."""
    instance = await _select(request)
    body = await request.read()
    response = await fetch_upstream(
        request.app[CLIENT_KEY],
        request.method,
        f"{instance.base_url}{request.path}",
        forward_headers(request.headers),
        body,
    )
    return relay_response(response)


async def handle_list(request: web.Request) -> web.StreamResponse:
    """List every instance that currently satisfies the selection policy."""
    settings = request.app[SETTINGS_KEY]
    selector = InstanceSelector(request.app[CLIENT_KEY], settings.selector)
    instances = await selector.list_instances()
    return web.json_response({"code": 200, "data": [i.base_url for i in instances]})


async def handle_unauthorized(request: web.Request) -> web.StreamResponse:
    """Fallback for every other path."""
    return unauthorized_response(request.app[SETTINGS_KEY].proxy)


async def _http_client_ctx(app: web.Application):
    """Own the pooled outbound client for the application's lifetime."""
    settings = app[SETTINGS_KEY]
    headers = {}
    if settings.proxy.user_agent:
        headers["User-Agent"] = settings.proxy.user_agent

    client = httpx.AsyncClient(
        timeout=settings.proxy.request_timeout,
        headers=headers,
        transport=app.get(TRANSPORT_KEY),
    )
    app[CLIENT_KEY] = client
    yield
    await client.aclose()


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> web.Application:
    """Create aiohttp application.

    Args:
        settings: Settings to use. Loaded from configuration if None.
        transport: Optional httpx transport for outbound calls (tests).
    """
    app = web.Application(middlewares=[error_middleware])
    app[SETTINGS_KEY] = settings or get_settings()
    if transport is not None:
        app[TRANSPORT_KEY] = transport
    app.cleanup_ctx.append(_http_client_ctx)

    app.router.add_route("*", "/search", handle_search)
    app.router.add_route("*", "/config", handle_config)
    app.router.add_get("/list", handle_list)
    app.router.add_route("*", "/{tail:.*}", handle_unauthorized)

    return app


async def serve(settings: Settings | None = None) -> None:
    """Run the proxy server until SIGINT/SIGTERM."""
    settings = settings or get_settings()
    host, port = settings.server.host, settings.server.port

    logger.info(
        "Starting searx-edge proxy",
        host=host,
        port=port,
        override_url=settings.selector.override_url,
        feed_url=settings.selector.feed_url,
    )

    app = create_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Proxy server running on http://{host}:{port}")

    stop_event = asyncio.Event()

    def handle_signal(sig: int) -> None:
        logger.info("Received shutdown signal", signal=sig)
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, functools.partial(handle_signal, sig))

    await stop_event.wait()

    logger.info("Shutting down proxy server")
    await runner.cleanup()
