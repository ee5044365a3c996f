# saferocks/db.py
from __future__ import annotations

import logging
import os
from typing import Any, ClassVar, Optional, Sequence, Union

from ._ffi import ffi
from .errors import RocksError, call
from .handle import NativeHandle
from .iterator import Iterator
from .options import FlushOptions, Options, ReadOptions, WriteOptions
from .snapshot import OwnedSnapshot
from .views import Bytes, BytesLike, as_bytes, take_value
from .write_batch import WriteBatch

logger = logging.getLogger(__name__)

__all__ = ["DB", "PathLike", "MultiGetResult"]

PathLike = Union[str, os.PathLike]
MultiGetResult = Union[Bytes, None, RocksError]


def _encode_path(name: PathLike) -> bytes:
    return os.fsencode(name)


def _multi_get(
        lib: Any,
        fn: Any,
        handle: Any,
        options: Any,
        keys: Sequence[BytesLike],
) -> list[MultiGetResult]:
    """
    Run a batched lookup and split the per-key outcomes.

    Each slot is independent: a value, ``None`` for a missing key, or the
    ``RocksError`` for that key alone (returned, not raised).
    """
    keys = [as_bytes(k) for k in keys]
    n = len(keys)
    if n == 0:
        return []

    key_bufs = [ffi.new("char[]", k) for k in keys]
    keys_list = ffi.new("char *[]", key_bufs)
    key_sizes = ffi.new("size_t[]", [len(k) for k in keys])
    values = ffi.new("char *[]", n)
    value_sizes = ffi.new("size_t[]", n)
    errs = ffi.new("char *[]", n)

    fn(handle, options, n, keys_list, key_sizes, values, value_sizes, errs)

    results: list[MultiGetResult] = []
    for i in range(n):
        if errs[i] != ffi.NULL:
            if values[i] != ffi.NULL:
                lib.rocksdb_free(values[i])
            results.append(RocksError.drain(lib, errs[i]))
        else:
            results.append(take_value(lib, values[i], value_sizes[i]))
    return results


class _Store(NativeHandle):
    """Point operations shared by ``DB`` and ``TransactionDB``."""

    _GET_FN: ClassVar[str]
    _PUT_FN: ClassVar[str]
    _DELETE_FN: ClassVar[str]
    _WRITE_FN: ClassVar[str]
    _MULTI_GET_FN: ClassVar[str]
    _CREATE_ITERATOR_FN: ClassVar[str]
    _CREATE_SNAPSHOT_FN: ClassVar[str]
    _RELEASE_SNAPSHOT_FN: ClassVar[str]

    name: str = ""

    def get(self, options: ReadOptions, key: BytesLike) -> Optional[Bytes]:
        """
        Look up one key.

        Args:
            options: Read options (snapshot, checksums, ...)
            key: Key to read

        Returns:
            The engine-allocated value, or ``None`` if the key is absent

        Raises:
            RocksError: If the engine reports a failure
        """
        key = as_bytes(key)
        length = ffi.new("size_t *")
        lib = self._lib
        value = call(lib, getattr(lib, self._GET_FN),
                     self._handle(), options._handle(), key, len(key), length)
        return take_value(lib, value, length[0])

    def multi_get(self, options: ReadOptions, keys: Sequence[BytesLike]) -> list[MultiGetResult]:
        """
        Look up many keys in one native call.

        Returns a list with one entry per key, in input order: the value,
        ``None`` when absent, or a ``RocksError`` instance for that key.
        """
        lib = self._lib
        return _multi_get(lib, getattr(lib, self._MULTI_GET_FN),
                          self._handle(), options._handle(), keys)

    def put(self, options: WriteOptions, key: BytesLike, value: BytesLike) -> None:
        key = as_bytes(key)
        value = as_bytes(value, "value")
        lib = self._lib
        call(lib, getattr(lib, self._PUT_FN),
             self._handle(), options._handle(), key, len(key), value, len(value))

    def delete(self, options: WriteOptions, key: BytesLike) -> None:
        """Delete ``key``; deleting an absent key is not an error."""
        key = as_bytes(key)
        lib = self._lib
        call(lib, getattr(lib, self._DELETE_FN),
             self._handle(), options._handle(), key, len(key))

    def write(self, options: WriteOptions, batch: WriteBatch) -> None:
        """Apply every operation staged in ``batch`` atomically, in order."""
        lib = self._lib
        call(lib, getattr(lib, self._WRITE_FN),
             self._handle(), options._handle(), batch._handle())

    def create_iterator(self, options: ReadOptions) -> Iterator:
        """Open an iterator borrowing this database and ``options``."""
        lib = self._lib
        ptr = getattr(lib, self._CREATE_ITERATOR_FN)(self._handle(), options._handle())
        return Iterator._create(lib, ptr, self, options)

    def create_snapshot(self) -> OwnedSnapshot:
        """Capture the current state; the snapshot is released through this database."""
        lib = self._lib
        ptr = getattr(lib, self._CREATE_SNAPSHOT_FN)(self._handle())
        return OwnedSnapshot._adopt(lib, ptr, self)

    def _release_snapshot(self, snapshot: Any) -> None:
        # Borrowers are closed before the database, so self._ptr is still live.
        getattr(self._lib, self._RELEASE_SNAPSHOT_FN)(self._ptr, snapshot)

    def _closed_message(self) -> str:
        return f"{type(self).__name__} at {self.name!r} is closed"

    def close(self) -> None:
        """Close live iterators, snapshots and transactions, then the database."""
        if not self.closed:
            logger.debug("Closing %s at %s", type(self).__name__, self.name)
        super().close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<{type(self).__name__} {self.name!r} {state}>"


class DB(_Store):
    """
    An open RocksDB database.

    RocksDB documents its database handle as safe for concurrent use from
    several threads; this wrapper relies on that and adds no locking.
    """

    _DESTROY_FN = "rocksdb_close"
    _GET_FN = "rocksdb_get"
    _PUT_FN = "rocksdb_put"
    _DELETE_FN = "rocksdb_delete"
    _WRITE_FN = "rocksdb_write"
    _MULTI_GET_FN = "rocksdb_multi_get"
    _CREATE_ITERATOR_FN = "rocksdb_create_iterator"
    _CREATE_SNAPSHOT_FN = "rocksdb_create_snapshot"
    _RELEASE_SNAPSHOT_FN = "rocksdb_release_snapshot"

    @classmethod
    def open(cls, options: Options, name: PathLike) -> DB:
        """
        Open the database directory ``name``.

        Args:
            options: Open options; ``create_if_missing`` and
                ``error_if_exists`` decide whether a missing or existing
                directory is an error
            name: Database directory

        Raises:
            RocksError: If the engine refuses to open the directory
        """
        lib = options._lib
        try:
            ptr = call(lib, lib.rocksdb_open, options._handle(), _encode_path(name))
        except RocksError as exc:
            logger.error("Failed to open RocksDB at %s: %s", name, exc)
            raise
        db = cls._adopt(lib, ptr)
        db.name = os.fspath(name)
        logger.info("Opened RocksDB at %s", db.name)
        return db

    @staticmethod
    def destroy(options: Options, name: PathLike) -> None:
        """Delete the database directory ``name``; it must not be open."""
        lib = options._lib
        call(lib, lib.rocksdb_destroy_db, options._handle(), _encode_path(name))
        logger.info("Destroyed RocksDB at %s", os.fspath(name))

    @staticmethod
    def repair(options: Options, name: PathLike) -> None:
        """Salvage what the engine can from a damaged database directory."""
        lib = options._lib
        call(lib, lib.rocksdb_repair_db, options._handle(), _encode_path(name))
        logger.info("Repaired RocksDB at %s", os.fspath(name))

    def flush(self, options: FlushOptions) -> None:
        """Flush memtables to SST files."""
        call(self._lib, self._lib.rocksdb_flush, self._handle(), options._handle())

    def get_property(self, name: str) -> Optional[str]:
        """
        Read an engine property such as ``rocksdb.estimate-num-keys``.

        Returns ``None`` for properties the engine does not know.
        """
        value = self._lib.rocksdb_property_value(self._handle(), name.encode("utf-8"))
        if value == ffi.NULL:
            return None
        try:
            return ffi.string(value).decode("utf-8", "replace")
        finally:
            self._lib.rocksdb_free(value)
