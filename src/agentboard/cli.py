"""agentboard command line: run the server or maintain the discovery index."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from agentboard.exceptions import CoordinatorError
from agentboard.logging import configure_logging
from agentboard.server import Services, build_services, create_server
from agentboard.settings import settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agentboard", description="Agent coordination and discovery MCP server")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("serve", help="Run the MCP server over stdio")

    reindex_parser = subparsers.add_parser("reindex", help="Rebuild similarity vectors from the document store")
    reindex_parser.add_argument("--collection", help="Only rebuild this knowledge collection")
    reindex_parser.add_argument("--skip-tools", action="store_true", help="Do not re-index tool definitions")

    discover_parser = subparsers.add_parser("discover", help="Find tools matching a natural language query")
    discover_parser.add_argument("query", help="What the tool should do")
    discover_parser.add_argument("--limit", type=int, default=None, help="Maximum results")
    return parser


async def reindex(services: Services, collection: str | None, skip_tools: bool) -> dict:
    result: dict = {}
    if not skip_tools:
        result["tools"] = (await services.index_tools()).to_wire()
    result["knowledge"] = (await services.index.reindex_knowledge(collection)).to_wire()
    return result


async def discover(services: Services, query: str, limit: int | None) -> list[dict]:
    matches = await services.queries.discover_tools(query, limit)
    return [{"name": m.name, "description": m.description, "score": round(m.score, 4)} for m in matches]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or settings.log_level)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        services = build_services(settings)
        if args.command == "serve":
            create_server(services, settings).run()
            return 0
        if args.command == "reindex":
            result = asyncio.run(reindex(services, args.collection, args.skip_tools))
        else:
            result = asyncio.run(discover(services, args.query, args.limit))
    except CoordinatorError as e:
        logger.error(f"{e.kind}: {e.message}")
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        return 2

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
