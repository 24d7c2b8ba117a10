#!/usr/bin/env python3
"""
Host inventory across the local machine, Active Directory and Entra ID

For each category that runs, writes two files to the output directory:
  1. HostInventory-<Category>.html - filterable table + SQL / virtual charts
  2. HostInventory-<Category>.csv  - one row per host (omitted when empty)

The local category always runs. Active Directory runs with --domain-server,
Entra ID devices with --cloud.
"""

import argparse
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from . import __version__
from .collector import collect
from .config import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_QUERY_TIMEOUT,
    OUTPUT_STEM,
    VIRTUAL_INDICATORS,
    InventoryOptions,
)
from .errors import RenderError, SourceUnavailable
from .report import RenderResult, render
from .sources import cloud_directory_hosts, directory_hosts, local_hosts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Category:
    name: str
    title: str
    mode: str
    hosts: Callable[[], list[str]]


def setup_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="hostinventory",
        description="Inventory hosts and render HTML/CSV reports per source.",
    )
    p.add_argument("--domain-server", metavar="ADDR",
                   help="Active Directory server to enumerate computers from")
    p.add_argument("--cloud", action="store_true",
                   help="also inventory Entra ID (Azure AD) devices")
    p.add_argument("--output-dir", type=Path, default=Path.cwd(),
                   help="directory for the reports, created if missing "
                        "(default: current directory)")
    p.add_argument("--max-workers", type=int, default=DEFAULT_MAX_WORKERS,
                   help=f"hosts probed in parallel (default: {DEFAULT_MAX_WORKERS})")
    p.add_argument("--probe-timeout", type=float, default=DEFAULT_PROBE_TIMEOUT,
                   help=f"seconds allowed per host (default: {DEFAULT_PROBE_TIMEOUT:.0f})")
    p.add_argument("--query-timeout", type=float, default=DEFAULT_QUERY_TIMEOUT,
                   help=f"seconds allowed per CIM query (default: {DEFAULT_QUERY_TIMEOUT:.0f})")
    p.add_argument("--dedupe", action="store_true",
                   help="probe each host name once, ignoring case")
    p.add_argument("--virtual-indicator", action="append", default=[], metavar="TEXT",
                   help="extra model substring that marks a virtual machine (repeatable)")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def categories(args: argparse.Namespace) -> list[Category]:
    selected = [Category("Local", "Host Inventory - Local Machine", "local", local_hosts)]
    if args.domain_server:
        server = args.domain_server
        selected.append(Category(
            "Directory", f"Host Inventory - Active Directory ({server})", "remote",
            lambda: directory_hosts(server),
        ))
    if args.cloud:
        selected.append(Category(
            "CloudDirectory", "Host Inventory - Entra ID Devices", "remote",
            cloud_directory_hosts,
        ))
    return selected


def run_category(category: Category, options: InventoryOptions, output_dir: Path) -> RenderResult:
    """Enumerate, probe and render one category.

    Raises SourceUnavailable when the host list cannot be fetched and
    RenderError when the reports cannot be written.
    """
    host_names = category.hosts()
    print(f"  {category.name}: probing {len(host_names)} host(s)...")
    result = collect(host_names, category.mode, options)
    if result.failures:
        print(f"    {len(result.failures)} host(s) skipped")

    stem = OUTPUT_STEM.format(category=category.name)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RenderError(output_dir, exc.strerror or str(exc)) from exc
    return render(
        result.records,
        category.title,
        output_dir / f"{stem}.html",
        output_dir / f"{stem}.csv",
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        options = InventoryOptions(
            max_workers=args.max_workers,
            probe_timeout=args.probe_timeout,
            query_timeout=args.query_timeout,
            dedupe=args.dedupe,
            virtual_indicators=VIRTUAL_INDICATORS + tuple(args.virtual_indicator),
        )
    except ValueError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    print("Generating host inventory...")
    print()

    written: list[Path] = []
    failed = False
    for category in categories(args):
        try:
            result = run_category(category, options, args.output_dir)
        except SourceUnavailable as exc:
            logger.warning("%s skipped: %s", category.name, exc)
            print(f"  [SKIP] {category.name}: {exc.detail}")
            continue
        except RenderError as exc:
            logger.error("%s: %s", category.name, exc)
            print(f"  [ERROR] {category.name}: {exc}")
            failed = True
            continue
        for path in (result.html_path, result.csv_path):
            if path is not None:
                print(f"  [OK] {path}")
                written.append(path)

    print()
    print(f"Done. {len(written)} files generated.")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
