"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Iterable

from catalog_search.cache import InMemoryCache, create_cache
from catalog_search.config import settings
from catalog_search.connectivity import AlwaysOnline
from catalog_search.es_client import EngineTransport
from catalog_search.executor import CachedQueryExecutor
from catalog_search.models import ResultEnvelope
from catalog_search.search import search_by_query, search_by_text

MAX_RESULTS = 100
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


async def build_executor(use_redis: bool) -> CachedQueryExecutor:
    probe = AlwaysOnline()
    cache = await create_cache(settings) if use_redis else InMemoryCache()
    return CachedQueryExecutor(settings, cache, EngineTransport(probe=probe), probe)


async def perform_query(query: str, *, structured: bool, size: int, use_redis: bool) -> ResultEnvelope:
    executor = await build_executor(use_redis)
    try:
        if structured:
            return await search_by_query(executor, json.loads(query), size=size)
        return await search_by_text(executor, query, size=size)
    finally:
        await executor.drain()
        await executor.cache.close()


def pretty_print_response(query: str, envelope: ResultEnvelope) -> None:
    flags = []
    if envelope.served_from_cache:
        flags.append("cache")
    if envelope.is_offline:
        flags.append(f"{RED}offline{RESET}")
    if envelope.no_results:
        flags.append("no results")
    label = ", ".join(flags) or f"{GREEN}live{RESET}"
    print(f"Query: {query} | results: {len(envelope.items)} of {envelope.total} | {label}")
    for idx, item in enumerate(envelope.items[:MAX_RESULTS], start=envelope.start + 1):
        score = item.get("_score")
        score_repr = f"{score:.2f}" if isinstance(score, (int, float)) else "-"
        print(f"  {idx:02d}. score={score_repr} | {item.get('slug') or '-'} | {item.get('name')}")


def run(query: str, args: argparse.Namespace) -> None:
    envelope = asyncio.run(perform_query(query, structured=args.json, size=args.size, use_redis=args.redis))
    pretty_print_response(query, envelope)


def interactive_shell(args: argparse.Namespace) -> None:
    print("Interactive catalog search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        run(query, args)


def batch_mode(file_path: Path, args: argparse.Namespace) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            run(query, args)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search layer")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--json", action="store_true", help="Treat queries as JSON request bodies")
    parser.add_argument("--size", type=int, default=MAX_RESULTS, help="Page size")
    parser.add_argument("--redis", action="store_true", help="Use the configured Redis cache")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.batch:
        batch_mode(args.batch, args)
        return 0
    if args.query:
        run(args.query, args)
        return 0
    interactive_shell(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
