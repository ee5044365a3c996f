# saferocks/transaction_db.py
from __future__ import annotations

import logging
import os
from typing import Optional

from ._ffi import ffi
from .db import PathLike, _encode_path, _Store
from .errors import RocksError, call
from .options import Options, TransactionDBOptions, TransactionOptions, WriteOptions
from .transaction import ReusableTransaction, Transaction

logger = logging.getLogger(__name__)

__all__ = ["TransactionDB"]


class TransactionDB(_Store):
    """
    A RocksDB database opened for pessimistic transactions.

    Offers the same point operations as ``DB`` (each acquires the row locks
    the engine needs) plus ``begin``. Lock timeouts and deadlocks surface as
    ordinary ``RocksError``s; nothing is retried. Like ``DB``, the handle is
    shared across threads without extra locking, relying on RocksDB's own
    guarantee.
    """

    _DESTROY_FN = "rocksdb_transactiondb_close"
    _GET_FN = "rocksdb_transactiondb_get"
    _PUT_FN = "rocksdb_transactiondb_put"
    _DELETE_FN = "rocksdb_transactiondb_delete"
    _WRITE_FN = "rocksdb_transactiondb_write"
    _MULTI_GET_FN = "rocksdb_transactiondb_multi_get"
    _CREATE_ITERATOR_FN = "rocksdb_transactiondb_create_iterator"
    _CREATE_SNAPSHOT_FN = "rocksdb_transactiondb_create_snapshot"
    _RELEASE_SNAPSHOT_FN = "rocksdb_transactiondb_release_snapshot"

    @classmethod
    def open(
            cls,
            options: Options,
            txn_db_options: TransactionDBOptions,
            name: PathLike,
    ) -> TransactionDB:
        """
        Open ``name`` as a transactional database.

        Raises:
            RocksError: If the engine refuses to open the directory
        """
        lib = options._lib
        try:
            ptr = call(lib, lib.rocksdb_transactiondb_open,
                       options._handle(), txn_db_options._handle(), _encode_path(name))
        except RocksError as exc:
            logger.error("Failed to open TransactionDB at %s: %s", name, exc)
            raise
        db = cls._adopt(lib, ptr)
        db.name = os.fspath(name)
        logger.info("Opened TransactionDB at %s", db.name)
        return db

    def begin(
            self,
            write_options: WriteOptions,
            txn_options: TransactionOptions,
            reuse: Optional[ReusableTransaction] = None,
    ) -> Transaction:
        """
        Start a transaction.

        Args:
            write_options: Write options applied at commit
            txn_options: Snapshot, lock timeout, expiration, ...
            reuse: Token from an earlier commit/rollback on this database;
                consumed, and its native handle recycled

        Raises:
            ValueError: If ``reuse`` came from another database
            HandleClosedError: If ``reuse`` was already consumed
        """
        handle = self._handle()
        wopts = write_options._handle()
        topts = txn_options._handle()
        old = ffi.NULL if reuse is None else reuse._consume(self)
        ptr = self._lib.rocksdb_transaction_begin(handle, wopts, topts, old)
        return Transaction._begin(self._lib, ptr, self)
