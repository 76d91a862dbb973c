from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import requests

from .fetcher import FetcherConfig, UrlFetcher
from .http_client import HttpClient
from .log import configure_logging
from .processors import AutoCrawl, ErrorResponseHandler, InvalidMimeForExtensions
from .results import FetchResult


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--cache-dir", type=Path, required=True)
    p.add_argument("--timeout", type=float, default=45)
    p.add_argument("--retries", type=int, default=0)
    p.add_argument(
        "--insecure",
        action="store_true",
        help="Do not verify TLS certificates",
    )
    p.add_argument("--max-cache-age", type=float, default=0)
    p.add_argument("--log-level", default="INFO")
    p.add_argument("--log-file", default=None)
    p.add_argument("--log-json", action="store_true")


def _build_fetcher(args: argparse.Namespace, *, delay_s: float, progress: bool) -> UrlFetcher:
    http = HttpClient(
        requests.Session(),
        timeout_s=args.timeout,
        max_retries=args.retries,
        verify=not args.insecure,
    )
    config = FetcherConfig(
        cache_dir=args.cache_dir,
        request_delay_s=delay_s,
        max_cache_age_s=args.max_cache_age,
        progress=progress,
    )
    return UrlFetcher(config, http=http)


def _summary_line(result: FetchResult) -> str:
    return (
        f"{result.response.status_code} {result.url} "
        f"content_type={result.response.content_type or '-'} "
        f"cached={'yes' if result.is_cached else 'no'} "
        f"bytes={len(result.response.body)}"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="webspider")
    sub = parser.add_subparsers(dest="cmd", required=True)

    crawl_p = sub.add_parser("crawl", help="Crawl a site breadth-first from a seed URL")
    crawl_p.add_argument("--seed", required=True)
    _add_common_args(crawl_p)
    crawl_p.add_argument("--max-depth", type=int, default=3)
    crawl_p.add_argument("--follow-offsite", action="store_true")
    crawl_p.add_argument(
        "--delay",
        type=float,
        default=2.0,
        help="Seconds to wait after every non-cached fetch (default: 2)",
    )
    crawl_p.add_argument(
        "--no-mime-guard",
        action="store_true",
        help="Cache responses even when Content-Type contradicts the extension",
    )
    crawl_p.add_argument("--progress", action="store_true")
    crawl_p.add_argument(
        "--link-paths-out",
        type=Path,
        default=None,
        help="Write the discovered page -> links map as JSON",
    )

    fetch_p = sub.add_parser("fetch", help="Fetch a single URL through the cache")
    fetch_p.add_argument("url")
    _add_common_args(fetch_p)
    fetch_p.add_argument("--no-cache", action="store_true")

    args = parser.parse_args(argv)
    configure_logging(args.log_level, to_file=args.log_file, json=args.log_json)

    if args.cmd == "crawl":
        fetcher = _build_fetcher(args, delay_s=args.delay, progress=args.progress)
        auto_crawl = AutoCrawl(
            args.max_depth, crawl_external_domains=args.follow_offsite
        )
        fetcher.on_fetch(auto_crawl)
        if not args.no_mime_guard:
            fetcher.on_fetch(InvalidMimeForExtensions())
        fetcher.on_fetch(ErrorResponseHandler())

        try:
            result = fetcher.fetch(args.seed)
        except RuntimeError as e:
            print(str(e), file=sys.stderr)
            return 1

        if result is not None:
            print(_summary_line(result))
        print(f"crawl: {len(fetcher.queue)} urls queued")

        if args.link_paths_out is not None:
            args.link_paths_out.parent.mkdir(parents=True, exist_ok=True)
            args.link_paths_out.write_text(
                json.dumps(auto_crawl.link_paths, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        return 0

    if args.cmd == "fetch":
        fetcher = _build_fetcher(args, delay_s=0, progress=False)
        try:
            result = fetcher.direct_fetch(args.url, cache_response=not args.no_cache)
        except RuntimeError as e:
            print(str(e), file=sys.stderr)
            return 1
        print(_summary_line(result))
        return 0

    return 2
