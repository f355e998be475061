"""
Main entry point for searx-edge.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

from searx_edge.proxy.server import serve
from searx_edge.search.extractor import extract
from searx_edge.search.instances import InstanceSelector
from searx_edge.search.normalizer import build_document
from searx_edge.utils.config import get_settings
from searx_edge.utils.errors import EdgeError
from searx_edge.utils.logging import configure_logging, get_logger


async def select_command(list_all: bool) -> int:
    """Print one qualifying instance, or all of them."""
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.proxy.request_timeout) as client:
        selector = InstanceSelector(client, settings.selector)
        if list_all:
            for instance in await selector.list_instances():
                print(instance.base_url)
            return 0

        instance = await selector.select_instance()
        if instance is None:
            print("No healthy instance available", file=sys.stderr)
            return 1
        print(instance.base_url)
        return 0


def parse_command(path: Path, category: str) -> int:
    """Run extraction on a saved result page and print the JSON document."""
    html = path.read_text(encoding="utf-8")
    document = build_document(extract(html, category))
    print(document.to_json())
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="searx-edge - JSON edge proxy for public SearXNG instances"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the proxy server")
    subparsers.add_parser("select", help="Print one qualifying instance")
    subparsers.add_parser("list", help="Print all qualifying instances")

    parse_parser = subparsers.add_parser("parse", help="Convert a saved HTML result page")
    parse_parser.add_argument("file", type=Path, help="HTML file to parse")
    parse_parser.add_argument(
        "--category", "-c",
        default="general",
        help="Result category of the page (default: general)",
    )

    args = parser.parse_args()

    configure_logging()
    logger = get_logger(__name__)

    try:
        if args.command == "serve":
            asyncio.run(serve())
            code = 0
        elif args.command in ("select", "list"):
            code = asyncio.run(select_command(list_all=args.command == "list"))
        else:
            code = parse_command(args.file, args.category)
    except EdgeError as e:
        logger.error("Command failed", **e.to_dict())
        code = 1
    except KeyboardInterrupt:
        code = 0

    sys.exit(code)


if __name__ == "__main__":
    main()
