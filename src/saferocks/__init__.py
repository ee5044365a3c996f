# saferocks/__init__.py
"""Ownership-checked Python bindings for the RocksDB C API."""
from .api import open_db, prefix_scan, range_scan, scan_all
from .config import DBConfig, LibraryConfig
from .db import DB
from .errors import HandleClosedError, RocksError, TransactionError
from .iterator import Iterator
from .options import (
    FlushOptions,
    Options,
    ReadOptions,
    TransactionDBOptions,
    TransactionOptions,
    WriteOptions,
)
from .snapshot import NULL_SNAPSHOT, BorrowedSnapshot, NullSnapshot, OwnedSnapshot
from .transaction import ReusableTransaction, Transaction, TransactionState
from .transaction_db import TransactionDB
from .views import Bytes, Slice
from .write_batch import WriteBatch

__all__ = [
    "DB",
    "TransactionDB",
    "Transaction",
    "TransactionState",
    "ReusableTransaction",
    "Iterator",
    "WriteBatch",
    "Options",
    "ReadOptions",
    "WriteOptions",
    "FlushOptions",
    "TransactionDBOptions",
    "TransactionOptions",
    "OwnedSnapshot",
    "BorrowedSnapshot",
    "NullSnapshot",
    "NULL_SNAPSHOT",
    "Bytes",
    "Slice",
    "RocksError",
    "TransactionError",
    "HandleClosedError",
    "DBConfig",
    "LibraryConfig",
    "open_db",
    "prefix_scan",
    "range_scan",
    "scan_all",
]
