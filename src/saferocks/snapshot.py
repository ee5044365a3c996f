# saferocks/snapshot.py
"""
Point-in-time read views.

Three variants share one capability, ``_as_native()``, which yields the
pointer to store in ``ReadOptions`` (or NULL):

* ``OwnedSnapshot`` comes from ``DB.create_snapshot()`` or
  ``TransactionDB.create_snapshot()`` and is released through that
  database. It borrows the database.
* ``BorrowedSnapshot`` comes from ``Transaction.get_snapshot()``. Its
  wrapper memory is freed with ``rocksdb_free``; it borrows the
  transaction.
* ``NULL_SNAPSHOT`` reads the current state and owns nothing.
"""
from __future__ import annotations

from typing import Any, Union

from ._ffi import ffi
from .handle import NativeHandle

__all__ = ["OwnedSnapshot", "BorrowedSnapshot", "NullSnapshot", "NULL_SNAPSHOT", "Snapshot"]


class OwnedSnapshot(NativeHandle):
    """A snapshot released through the database that created it."""

    @classmethod
    def _release(cls, lib: Any, ptr: Any, *owners: NativeHandle) -> None:
        db = owners[0]
        db._release_snapshot(ptr)

    @property
    def db(self):
        return self._owners[0]

    def _as_native(self) -> Any:
        return self._handle()


class BorrowedSnapshot(NativeHandle):
    """A transaction's snapshot; valid only while the transaction is active."""

    @classmethod
    def _release(cls, lib: Any, ptr: Any, *owners: NativeHandle) -> None:
        lib.rocksdb_free(ptr)

    def _closed_message(self) -> str:
        return "BorrowedSnapshot is closed (released, or its transaction ended)"

    def _as_native(self) -> Any:
        return self._handle()


class NullSnapshot:
    """No snapshot: reads see the latest committed state."""

    closed = False

    def _as_native(self) -> Any:
        return ffi.NULL

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return "NULL_SNAPSHOT"


NULL_SNAPSHOT = NullSnapshot()

Snapshot = Union[OwnedSnapshot, BorrowedSnapshot, NullSnapshot]
