#!/usr/bin/env python3
"""
Move product CSVs between a local machine and a deployed Inventory API.

  push  uploads a CSV to POST /api/products/import and prints the summary
  pull  downloads GET /api/products/export into a local file
"""

from __future__ import annotations

import argparse
import os
import sys
import textwrap
from pathlib import Path
from typing import Any, Dict, Optional

import requests

DEFAULT_TIMEOUT = (10, 60)  # connect, read
DEFAULT_OUTPUT = Path("products.csv")


def _normalize_api_base(raw: str) -> str:
    base = raw.strip().rstrip("/")
    if not base:
        raise SystemExit(
            "Missing API base URL. Pass --api-base or set INVENTORY_API_BASE."
        )
    if not base.endswith("/api"):
        base = f"{base}/api"
    return base


def _new_session(actor: Optional[str] = None) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": "inventory-sync/1.0"})
    if actor:
        session.headers.update({"X-Changed-By": actor})
    return session


def push_csv(session: requests.Session, api_base: str, csv_path: Path) -> Dict[str, Any]:
    with csv_path.open("rb") as handle:
        files = {"file": (csv_path.name, handle, "text/csv")}
        resp = session.post(
            f"{api_base}/products/import",
            files=files,
            timeout=DEFAULT_TIMEOUT,
        )
    resp.raise_for_status()
    return resp.json()


def pull_csv(session: requests.Session, api_base: str, output: Path) -> int:
    resp = session.get(f"{api_base}/products/export", timeout=DEFAULT_TIMEOUT)
    resp.raise_for_status()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(resp.content)
    return len(resp.content)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload or download product CSVs through the Inventory API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """
            Examples:
              # Import a spreadsheet export into production
              python backend/scripts/sync_remote.py \\
                  --api-base https://inventory.example.com push products.csv

              # Back up the current catalog
              python backend/scripts/sync_remote.py \\
                  --api-base https://inventory.example.com pull -o backup.csv
            """
        ),
    )
    parser.add_argument(
        "--api-base",
        dest="api_base",
        default=os.getenv("INVENTORY_API_BASE"),
        help="Inventory API origin (with or without trailing /api). Defaults to INVENTORY_API_BASE env.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    push = subparsers.add_parser("push", help="Upload a CSV file for import")
    push.add_argument("csv_path", type=Path, help="CSV file to upload")

    pull = subparsers.add_parser("pull", help="Download the product export")
    pull.add_argument(
        "-o",
        "--output",
        dest="output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help=f"Destination file (default: {DEFAULT_OUTPUT})",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None, session: Optional[requests.Session] = None) -> int:
    args = parse_args(argv)
    api_base = _normalize_api_base(args.api_base or "")
    session = session or _new_session(os.getenv("INVENTORY_ACTOR"))

    if args.command == "push":
        if not args.csv_path.exists():
            raise SystemExit(f"CSV file not found: {args.csv_path}")
        summary = push_csv(session, api_base, args.csv_path)
        duplicates = summary.get("duplicates", [])
        print(
            "Summary:"
            f"\n  Added: {summary.get('added', 0)}"
            f"\n  Skipped: {summary.get('skipped', 0)}"
            f"\n  Duplicates: {len(duplicates)}"
        )
        for duplicate in duplicates:
            print(f"    {duplicate.get('name')} (existing id={duplicate.get('existingId')})")
        return 0

    size = pull_csv(session, api_base, args.output)
    print(f"Saved {size} bytes to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
