# saferocks/iterator.py
from __future__ import annotations

from typing import Any, Optional

from ._ffi import ffi
from .errors import RocksError
from .handle import NativeHandle
from .views import BytesLike, Slice, as_bytes

__all__ = ["Iterator"]


class Iterator(NativeHandle):
    """
    Cursor over a key range of a DB, TransactionDB or Transaction.

    Borrows its source and the ``ReadOptions`` it was created with for its
    whole lifetime. A fresh iterator is not valid until it is positioned.

    Moving past either end makes it invalid; ``seek_to_first()`` or
    ``seek_to_last()`` make it valid again when the range is non-empty.
    Step calls never report errors; poll ``get_error()`` instead.

    One iterator is a single cursor: concurrent calls on the same instance
    must be serialized by the caller.
    """

    _DESTROY_FN = "rocksdb_iter_destroy"

    @classmethod
    def _create(cls, lib: Any, ptr: Any, source: NativeHandle, read_options: NativeHandle) -> Iterator:
        it = cls._adopt(lib, ptr, source, read_options)
        it._epoch = 0
        return it

    @property
    def source(self) -> NativeHandle:
        return self._owners[0]

    def valid(self) -> bool:
        return self._lib.rocksdb_iter_valid(self._handle()) != 0

    def seek(self, key: BytesLike) -> None:
        """Position at the first key >= ``key``."""
        key = as_bytes(key)
        ptr = self._handle()
        self._epoch += 1
        self._lib.rocksdb_iter_seek(ptr, key, len(key))

    def seek_for_prev(self, key: BytesLike) -> None:
        """Position at the last key <= ``key``."""
        key = as_bytes(key)
        ptr = self._handle()
        self._epoch += 1
        self._lib.rocksdb_iter_seek_for_prev(ptr, key, len(key))

    def seek_to_first(self) -> None:
        ptr = self._handle()
        self._epoch += 1
        self._lib.rocksdb_iter_seek_to_first(ptr)

    def seek_to_last(self) -> None:
        ptr = self._handle()
        self._epoch += 1
        self._lib.rocksdb_iter_seek_to_last(ptr)

    def next(self) -> None:
        ptr = self._handle()
        self._epoch += 1
        self._lib.rocksdb_iter_next(ptr)

    def prev(self) -> None:
        ptr = self._handle()
        self._epoch += 1
        self._lib.rocksdb_iter_prev(ptr)

    # REQUIRES: valid()
    def key(self) -> Slice:
        length = ffi.new("size_t *")
        ptr = self._lib.rocksdb_iter_key(self._handle(), length)
        return Slice(self, ptr, length[0])

    # REQUIRES: valid()
    def value(self) -> Slice:
        length = ffi.new("size_t *")
        ptr = self._lib.rocksdb_iter_value(self._handle(), length)
        return Slice(self, ptr, length[0])

    def get_error(self) -> Optional[RocksError]:
        """Return the error that made the iterator invalid, if any (not raised)."""
        errptr = ffi.new("char **")
        self._lib.rocksdb_iter_get_error(self._handle(), errptr)
        if errptr[0] != ffi.NULL:
            return RocksError.drain(self._lib, errptr[0])
        return None
