# saferocks/options.py
"""
Configuration handles.

Each class owns one native options struct, created by its paired
``*_create`` call and destroyed by ``*_destroy``. The setters are plain
pass-throughs. An options object must not be mutated while a call that
uses it is in flight.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from ._ffi import ffi
from .errors import HandleClosedError
from .handle import NativeHandle
from .views import BytesLike, as_bytes

if TYPE_CHECKING:
    from .snapshot import Snapshot

__all__ = [
    "Options",
    "ReadOptions",
    "WriteOptions",
    "FlushOptions",
    "TransactionDBOptions",
    "TransactionOptions",
]


class Options(NativeHandle):
    """Database options (``rocksdb_options_t``)."""

    _CREATE_FN = "rocksdb_options_create"
    _DESTROY_FN = "rocksdb_options_destroy"

    def set_create_if_missing(self, create: bool) -> None:
        self._lib.rocksdb_options_set_create_if_missing(self._handle(), int(bool(create)))

    def get_create_if_missing(self) -> bool:
        return self._lib.rocksdb_options_get_create_if_missing(self._handle()) != 0

    def set_error_if_exists(self, error: bool) -> None:
        self._lib.rocksdb_options_set_error_if_exists(self._handle(), int(bool(error)))

    def get_error_if_exists(self) -> bool:
        return self._lib.rocksdb_options_get_error_if_exists(self._handle()) != 0

    def set_max_background_jobs(self, jobs: int) -> None:
        self._lib.rocksdb_options_set_max_background_jobs(self._handle(), int(jobs))

    def set_write_buffer_size(self, size: int) -> None:
        self._lib.rocksdb_options_set_write_buffer_size(self._handle(), int(size))

    def set_level0_file_num_compaction_trigger(self, n: int) -> None:
        self._lib.rocksdb_options_set_level0_file_num_compaction_trigger(self._handle(), int(n))

    def increase_parallelism(self, total_threads: int) -> None:
        self._lib.rocksdb_options_increase_parallelism(self._handle(), int(total_threads))

    def copy(self) -> Options:
        """Deep copy at the engine level; the copy is an independent handle."""
        return Options._adopt(self._lib, self._lib.rocksdb_options_create_copy(self._handle()))

    __copy__ = copy


class ReadOptions(NativeHandle):
    """
    Read options (``rocksdb_readoptions_t``).

    The engine keeps raw pointers to the attached snapshot and to the
    iterate bounds, so this object keeps them alive and checks the
    snapshot is still open every time the options are used.
    """

    _CREATE_FN = "rocksdb_readoptions_create"
    _DESTROY_FN = "rocksdb_readoptions_destroy"

    def __init__(self, lib: Optional[Any] = None):
        super().__init__(lib)
        self._snapshot: Optional[Snapshot] = None
        self._upper_bound: Optional[bytes] = None
        self._lower_bound: Optional[bytes] = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    def set_snapshot(self, snapshot: Snapshot) -> None:
        """Read as of ``snapshot``; ``NULL_SNAPSHOT`` means the current state."""
        ptr = snapshot._as_native()
        self._lib.rocksdb_readoptions_set_snapshot(self._setter_handle(), ptr)
        self._snapshot = None if ptr == ffi.NULL else snapshot

    def set_iterate_upper_bound(self, key: BytesLike) -> None:
        self._upper_bound = as_bytes(key, "upper bound")
        self._lib.rocksdb_readoptions_set_iterate_upper_bound(
            self._setter_handle(), self._upper_bound, len(self._upper_bound)
        )

    def set_iterate_lower_bound(self, key: BytesLike) -> None:
        self._lower_bound = as_bytes(key, "lower bound")
        self._lib.rocksdb_readoptions_set_iterate_lower_bound(
            self._setter_handle(), self._lower_bound, len(self._lower_bound)
        )

    def set_fill_cache(self, fill: bool) -> None:
        self._lib.rocksdb_readoptions_set_fill_cache(self._setter_handle(), int(bool(fill)))

    def set_verify_checksums(self, verify: bool) -> None:
        self._lib.rocksdb_readoptions_set_verify_checksums(self._setter_handle(), int(bool(verify)))

    def _setter_handle(self) -> Any:
        # No released-snapshot check, so a stale snapshot can be replaced.
        return super()._handle()

    def _handle(self) -> Any:
        ptr = super()._handle()
        snapshot = self._snapshot
        if snapshot is not None and snapshot.closed:
            raise HandleClosedError("ReadOptions refers to a released snapshot")
        return ptr


class WriteOptions(NativeHandle):
    """Write options (``rocksdb_writeoptions_t``)."""

    _CREATE_FN = "rocksdb_writeoptions_create"
    _DESTROY_FN = "rocksdb_writeoptions_destroy"

    def set_sync(self, sync: bool) -> None:
        self._lib.rocksdb_writeoptions_set_sync(self._handle(), int(bool(sync)))

    def disable_wal(self, disable: bool = True) -> None:
        self._lib.rocksdb_writeoptions_disable_WAL(self._handle(), int(bool(disable)))


class FlushOptions(NativeHandle):
    """Flush options (``rocksdb_flushoptions_t``)."""

    _CREATE_FN = "rocksdb_flushoptions_create"
    _DESTROY_FN = "rocksdb_flushoptions_destroy"

    def set_wait(self, wait: bool) -> None:
        self._lib.rocksdb_flushoptions_set_wait(self._handle(), int(bool(wait)))

    def get_wait(self) -> bool:
        return self._lib.rocksdb_flushoptions_get_wait(self._handle()) != 0


class TransactionDBOptions(NativeHandle):
    """Lock-table tuning for a transactional database."""

    _CREATE_FN = "rocksdb_transactiondb_options_create"
    _DESTROY_FN = "rocksdb_transactiondb_options_destroy"

    def set_max_num_locks(self, max_num_locks: int) -> None:
        self._lib.rocksdb_transactiondb_options_set_max_num_locks(self._handle(), int(max_num_locks))

    def set_num_stripes(self, num_stripes: int) -> None:
        self._lib.rocksdb_transactiondb_options_set_num_stripes(self._handle(), int(num_stripes))

    def set_transaction_lock_timeout(self, timeout_ms: int) -> None:
        self._lib.rocksdb_transactiondb_options_set_transaction_lock_timeout(
            self._handle(), int(timeout_ms)
        )

    def set_default_lock_timeout(self, timeout_ms: int) -> None:
        self._lib.rocksdb_transactiondb_options_set_default_lock_timeout(
            self._handle(), int(timeout_ms)
        )


class TransactionOptions(NativeHandle):
    """Per-transaction options (``rocksdb_transaction_options_t``)."""

    _CREATE_FN = "rocksdb_transaction_options_create"
    _DESTROY_FN = "rocksdb_transaction_options_destroy"

    def set_set_snapshot(self, set_snapshot: bool) -> None:
        """Capture a snapshot at ``begin`` (see ``Transaction.get_snapshot``)."""
        self._lib.rocksdb_transaction_options_set_set_snapshot(self._handle(), int(bool(set_snapshot)))

    def set_deadlock_detect(self, detect: bool) -> None:
        self._lib.rocksdb_transaction_options_set_deadlock_detect(self._handle(), int(bool(detect)))

    def set_lock_timeout(self, timeout_ms: int) -> None:
        self._lib.rocksdb_transaction_options_set_lock_timeout(self._handle(), int(timeout_ms))

    def set_expiration(self, expiration_ms: int) -> None:
        self._lib.rocksdb_transaction_options_set_expiration(self._handle(), int(expiration_ms))

    def set_deadlock_detect_depth(self, depth: int) -> None:
        self._lib.rocksdb_transaction_options_set_deadlock_detect_depth(self._handle(), int(depth))

    def set_max_write_batch_size(self, size: int) -> None:
        self._lib.rocksdb_transaction_options_set_max_write_batch_size(self._handle(), int(size))
