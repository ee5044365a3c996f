#!/usr/bin/env python3
"""
saferocks: administrative commands for a RocksDB directory.

Examples:
  saferocks props /path/to/db
  saferocks props /path/to/db --property rocksdb.estimate-num-keys
  saferocks scan /path/to/db --prefix user: --limit 20
  saferocks repair /path/to/db
  saferocks --log-file --log-level INFO repair /path/to/db
  saferocks destroy /path/to/db --yes
"""
from __future__ import annotations

import argparse
import logging
import sys
from itertools import islice
from typing import List, Optional

from . import _ffi
from .api import open_db, prefix_scan, scan_all
from .config import DBConfig, LibraryConfig
from .db import DB
from .errors import RocksError
from .log import setup_logger
from .options import Options

DEFAULT_PROPERTIES = [
    "rocksdb.estimate-num-keys",
    "rocksdb.estimate-table-readers-mem",
    "rocksdb.size-all-mem-tables",
    "rocksdb.num-entries-active-mem-table",
    "rocksdb.estimate-live-data-size",
    "rocksdb.total-sst-files-size",
    "rocksdb.num-live-versions",
    "rocksdb.base-level",
    "rocksdb.estimate-pending-compaction-bytes",
]


def _format(data: bytes, as_hex: bool) -> str:
    return data.hex() if as_hex else repr(data)[2:-1]


def cmd_props(args: argparse.Namespace) -> int:
    props = args.property or DEFAULT_PROPERTIES
    with open_db(args.path, DBConfig(create_if_missing=False), flush_on_close=False) as db:
        for prop in props:
            value = db.get_property(prop)
            if value is None:
                print(f"✗ {prop}: None")
            elif value.isdigit() and int(value) > 1000:
                print(f"✓ {prop}: {int(value):,}")
            else:
                print(f"✓ {prop}: {value}")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    with open_db(args.path, DBConfig(create_if_missing=False), flush_on_close=False) as db:
        if args.prefix is not None:
            rows = prefix_scan(db, args.prefix.encode("utf-8"))
        else:
            rows = scan_all(db)
        if args.limit is not None:
            rows = islice(rows, args.limit)
        for k, v in rows:
            print(f"{_format(k, args.hex)}\t{_format(v, args.hex)}")
    return 0


def cmd_repair(args: argparse.Namespace) -> int:
    with Options() as opts:
        DB.repair(opts, args.path)
    print(f"Repaired {args.path}")
    return 0


def cmd_destroy(args: argparse.Namespace) -> int:
    if not args.yes:
        print(f"Refusing to destroy {args.path} without --yes", file=sys.stderr)
        return 2
    with Options() as opts:
        DB.destroy(opts, args.path)
    print(f"Destroyed {args.path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="saferocks",
        description="Administrative commands for a RocksDB directory.",
    )
    ap.add_argument("--library", help=f"Path to librocksdb (default: ${LibraryConfig.ENV_VAR} or system search)")
    ap.add_argument("--log-level", default="WARNING",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    ap.add_argument("--log-file", action="store_true",
                    help="Also write a timestamped log file next to the database directory")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("props", help="Print engine properties")
    p.add_argument("path")
    p.add_argument("--property", action="append", help="Property name (repeatable)")
    p.set_defaults(func=cmd_props)

    p = sub.add_parser("scan", help="Print key/value pairs")
    p.add_argument("path")
    p.add_argument("--prefix", help="Only keys starting with this UTF-8 prefix")
    p.add_argument("--limit", type=int, help="Stop after N pairs")
    p.add_argument("--hex", action="store_true", help="Print keys and values as hex")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("repair", help="Repair a damaged database")
    p.add_argument("path")
    p.set_defaults(func=cmd_repair)

    p = sub.add_parser("destroy", help="Delete a database directory")
    p.add_argument("path")
    p.add_argument("--yes", action="store_true", help="Confirm destruction")
    p.set_defaults(func=cmd_destroy)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = getattr(logging, args.log_level)
    if args.log_file:
        setup_logger(args.path, level=level, console=True, force=True)
    else:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.library:
        _ffi.set_library(_ffi.load_library(LibraryConfig(path=args.library)))

    try:
        return args.func(args)
    except RocksError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
