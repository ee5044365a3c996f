# saferocks/api.py
"""High-level helpers: open a database with cleanup, and key-range scans."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from .config import DBConfig
from .db import DB
from .errors import RocksError
from .options import FlushOptions, ReadOptions

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
KV = Tuple[bytes, bytes]

__all__ = ["open_db", "prefix_scan", "range_scan", "scan_all"]


def _open_with_retry(
        path: Path,
        config: DBConfig,
        retries: int,
        delay_seconds: float,
        backoff: float,
) -> DB:
    """Open ``path``, retrying only on lock errors (e.g. after a crashed process)."""
    attempt = 1
    delay = delay_seconds
    while True:
        with config.to_options() as opts:
            try:
                return DB.open(opts, path)
            except RocksError as exc:
                lock_issue = "lock" in exc.message.lower()
                if not lock_issue or attempt > retries:
                    raise

                logger.warning(
                    "RocksDB lock issue opening %s (attempt %d/%d): %s",
                    path,
                    attempt,
                    retries + 1,
                    exc,
                )
        time.sleep(delay)
        delay *= backoff
        attempt += 1


@contextmanager
def open_db(
        path: PathLike,
        config: Optional[DBConfig] = None,
        *,
        retries: int = 0,
        delay_seconds: float = 0.2,
        backoff: float = 2.0,
        flush_on_close: bool = True,
):
    """
    Open a RocksDB database with automatic cleanup.

    Args:
        path: Database directory (parents are created as needed)
        config: Open options; defaults to ``DBConfig()``
        retries: Additional attempts after a lock error (default: none)
        delay_seconds: Initial sleep between retries
        backoff: Multiplicative factor for subsequent sleeps
        flush_on_close: Flush memtables to SST files before closing
    """
    path = Path(path).expanduser()
    # RocksDB creates the DB directory itself, not its parents
    path.parent.mkdir(parents=True, exist_ok=True)

    db = _open_with_retry(path, config or DBConfig(), retries, delay_seconds, backoff)
    try:
        yield db
    finally:
        if flush_on_close and not db.closed:
            try:
                with FlushOptions(db._lib) as fopts:
                    fopts.set_wait(True)
                    db.flush(fopts)
            except RocksError as exc:
                logger.warning("Database flush failed for %s: %s", path, exc)
        db.close()


def _scan(
        db: DB,
        start: bytes,
        stop_prefix: Optional[bytes],
        upper_exclusive: Optional[bytes],
        read_options: Optional[ReadOptions],
) -> Iterator[KV]:
    own_options = read_options is None
    opts = ReadOptions(db._lib) if own_options else read_options
    try:
        if own_options and upper_exclusive is not None:
            opts.set_iterate_upper_bound(upper_exclusive)
        it = db.create_iterator(opts)
        try:
            it.seek(start)
            while it.valid():
                k = it.key().tobytes()
                if stop_prefix is not None and not k.startswith(stop_prefix):
                    break
                if upper_exclusive is not None and k >= upper_exclusive:
                    break
                yield k, it.value().tobytes()
                it.next()
            else:
                error = it.get_error()
                if error is not None:
                    raise error
        finally:
            it.close()
    finally:
        if own_options:
            opts.close()


def prefix_scan(db: DB, prefix: bytes, read_options: Optional[ReadOptions] = None) -> Iterator[KV]:
    """
    Scan all key-value pairs whose key starts with ``prefix``.

    Args:
        db: Open database (``DB`` or ``TransactionDB``)
        prefix: Binary prefix to match
        read_options: Optional read options (e.g. with a snapshot attached)
    """
    if not isinstance(prefix, bytes):
        raise TypeError(f"prefix must be bytes, got {type(prefix).__name__}")
    return _scan(db, prefix, prefix, None, read_options)


def range_scan(
        db: DB,
        lower: bytes = b"",
        upper_exclusive: Optional[bytes] = None,
        read_options: Optional[ReadOptions] = None,
) -> Iterator[KV]:
    """
    Scan key-value pairs in range [lower, upper_exclusive).

    Caller-supplied ``read_options`` are left unchanged; the upper bound is
    only set as the engine iterate bound on options created here.

    Args:
        db: Open database
        lower: Inclusive lower bound (default: scan from start)
        upper_exclusive: Exclusive upper bound (default: scan to end)
        read_options: Optional read options
    """
    if not isinstance(lower, (bytes, bytearray, memoryview)):
        raise TypeError(f"lower must be bytes-like, got {type(lower).__name__}")
    lower = bytes(lower)

    if upper_exclusive is not None:
        if not isinstance(upper_exclusive, (bytes, bytearray, memoryview)):
            raise TypeError(f"upper_exclusive must be bytes-like, got {type(upper_exclusive).__name__}")
        upper_exclusive = bytes(upper_exclusive)

    return _scan(db, lower, None, upper_exclusive, read_options)


def scan_all(db: DB, read_options: Optional[ReadOptions] = None) -> Iterator[KV]:
    """Full forward scan of all key-value pairs."""
    return range_scan(db, b"", None, read_options)
