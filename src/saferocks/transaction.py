# saferocks/transaction.py
"""
Transactions on a ``TransactionDB``.

A transaction starts ACTIVE and ends COMMITTED or ROLLED_BACK. Ending it
consumes the Python object: it raises ``HandleClosedError`` from then on,
and its native handle moves into the returned ``ReusableTransaction``,
which ``TransactionDB.begin(..., reuse=token)`` recycles instead of
allocating a new handle.

If the engine refuses the commit (or rollback), nothing is consumed:
``TransactionError.transaction`` is this same transaction, still ACTIVE.
Its borrowed iterators and snapshots are closed either way.
"""
from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any, Optional

from ._ffi import ffi
from .errors import RocksError, TransactionError, call
from .handle import NativeHandle
from .iterator import Iterator
from .snapshot import BorrowedSnapshot
from .views import Bytes, BytesLike, as_bytes, take_value

if TYPE_CHECKING:
    from .options import ReadOptions
    from .transaction_db import TransactionDB

__all__ = ["Transaction", "TransactionState", "ReusableTransaction"]


class TransactionState(enum.Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled back"


class Transaction(NativeHandle):
    """
    In-flight work against a ``TransactionDB``; borrows the database.

    Closing an ACTIVE transaction (or leaving its ``with`` block) destroys
    it without committing, which discards its writes.
    """

    _DESTROY_FN = "rocksdb_transaction_destroy"

    @classmethod
    def _begin(cls, lib: Any, ptr: Any, txn_db: TransactionDB) -> Transaction:
        txn = cls._adopt(lib, ptr, txn_db)
        txn._state = TransactionState.ACTIVE
        return txn

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def db(self) -> TransactionDB:
        return self._owners[0]

    def _closed_message(self) -> str:
        if self._state is TransactionState.ACTIVE:
            return "Transaction is closed"
        return f"Transaction is {self._state.value}"

    def set_savepoint(self) -> None:
        self._lib.rocksdb_transaction_set_savepoint(self._handle())

    def rollback_to_savepoint(self) -> None:
        """Undo everything since the most recent savepoint; stays ACTIVE."""
        call(self._lib, self._lib.rocksdb_transaction_rollback_to_savepoint, self._handle())

    def get(self, options: ReadOptions, key: BytesLike) -> Optional[Bytes]:
        """Read ``key``, seeing this transaction's own uncommitted writes."""
        key = as_bytes(key)
        length = ffi.new("size_t *")
        value = call(self._lib, self._lib.rocksdb_transaction_get,
                     self._handle(), options._handle(), key, len(key), length)
        return take_value(self._lib, value, length[0])

    def get_for_update(self, options: ReadOptions, key: BytesLike, exclusive: bool = True) -> Optional[Bytes]:
        """
        Read ``key`` and lock it until the transaction ends.

        Args:
            options: Read options
            key: Key to read and lock
            exclusive: Exclusive lock if True, shared lock otherwise

        Raises:
            RocksError: Lock timeout, deadlock, or a write conflict
        """
        key = as_bytes(key)
        length = ffi.new("size_t *")
        value = call(self._lib, self._lib.rocksdb_transaction_get_for_update,
                     self._handle(), options._handle(), key, len(key), length, int(bool(exclusive)))
        return take_value(self._lib, value, length[0])

    def put(self, key: BytesLike, value: BytesLike) -> None:
        key = as_bytes(key)
        value = as_bytes(value, "value")
        call(self._lib, self._lib.rocksdb_transaction_put,
             self._handle(), key, len(key), value, len(value))

    def delete(self, key: BytesLike) -> None:
        key = as_bytes(key)
        call(self._lib, self._lib.rocksdb_transaction_delete, self._handle(), key, len(key))

    def create_iterator(self, options: ReadOptions) -> Iterator:
        """Iterate the database merged with this transaction's writes."""
        ptr = self._lib.rocksdb_transaction_create_iterator(self._handle(), options._handle())
        return Iterator._create(self._lib, ptr, self, options)

    def get_snapshot(self) -> Optional[BorrowedSnapshot]:
        """The snapshot taken at ``begin``, or None unless ``set_snapshot`` was requested."""
        ptr = self._lib.rocksdb_transaction_get_snapshot(self._handle())
        if ptr == ffi.NULL:
            return None
        return BorrowedSnapshot._adopt(self._lib, ptr, self)

    def commit(self) -> ReusableTransaction:
        """
        Commit and consume the transaction.

        Iterators and snapshots borrowed from the transaction are closed
        first, even if the commit then fails.

        Returns:
            A token that ``TransactionDB.begin`` can recycle

        Raises:
            TransactionError: The engine refused; the transaction is still ACTIVE
        """
        return self._finish(self._lib.rocksdb_transaction_commit, TransactionState.COMMITTED)

    def rollback(self) -> ReusableTransaction:
        """Discard all writes and consume the transaction; same contract as ``commit``."""
        return self._finish(self._lib.rocksdb_transaction_rollback, TransactionState.ROLLED_BACK)

    def _finish(self, fn: Any, state: TransactionState) -> ReusableTransaction:
        ptr = self._handle()
        self._close_borrowers()
        try:
            call(self._lib, fn, ptr)
        except RocksError as exc:
            raise TransactionError(self, exc) from None
        self._state = state
        return ReusableTransaction._take_over(self)

    def __repr__(self) -> str:
        if self.closed and self._state is TransactionState.ACTIVE:
            return "<Transaction closed>"
        return f"<Transaction {self._state.value}>"


class ReusableTransaction(NativeHandle):
    """
    The inert handle of a finished transaction.

    Pass it to ``TransactionDB.begin(..., reuse=token)`` of the same
    database to recycle it; it can be used once. If it is never reused it
    is destroyed like any other handle.
    """

    _DESTROY_FN = "rocksdb_transaction_destroy"

    @classmethod
    def _take_over(cls, txn: Transaction) -> ReusableTransaction:
        txn_db = txn.db
        ptr = txn._detach()
        return cls._adopt(txn._lib, ptr, txn_db)

    @property
    def db(self) -> TransactionDB:
        return self._owners[0]

    def _closed_message(self) -> str:
        return "ReusableTransaction was already reused or closed"

    def _consume(self, txn_db: TransactionDB) -> Any:
        if not self.closed and self.db is not txn_db:
            raise ValueError("ReusableTransaction belongs to a different TransactionDB")
        return self._detach()
