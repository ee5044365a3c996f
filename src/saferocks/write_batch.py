# saferocks/write_batch.py
from __future__ import annotations

from .handle import NativeHandle
from .views import BytesLike, as_bytes

__all__ = ["WriteBatch"]


class WriteBatch(NativeHandle):
    """
    Ordered puts and deletes, applied atomically by ``DB.write``.

    Independent of any database: a batch can be built, written, cleared and
    reused. Staging never fails; only the write does.
    """

    _CREATE_FN = "rocksdb_writebatch_create"
    _DESTROY_FN = "rocksdb_writebatch_destroy"

    def clear(self) -> None:
        self._lib.rocksdb_writebatch_clear(self._handle())

    def count(self) -> int:
        """Number of operations currently staged."""
        return int(self._lib.rocksdb_writebatch_count(self._handle()))

    def __len__(self) -> int:
        return self.count()

    def put(self, key: BytesLike, value: BytesLike) -> None:
        key = as_bytes(key)
        value = as_bytes(value, "value")
        self._lib.rocksdb_writebatch_put(self._handle(), key, len(key), value, len(value))

    def delete(self, key: BytesLike) -> None:
        key = as_bytes(key)
        self._lib.rocksdb_writebatch_delete(self._handle(), key, len(key))
