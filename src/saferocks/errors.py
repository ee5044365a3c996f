# saferocks/errors.py
"""
Error channel for the RocksDB C API.

Every fallible ``rocksdb_*`` call takes a trailing ``char **errptr``. The
slot starts out NULL; after the call a non-NULL slot holds an
engine-allocated message that must be copied out and released with
``rocksdb_free`` exactly once. ``call()`` is the only place that convention
is handled for single-result calls; nothing above it sees ``errptr``.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from ._ffi import ffi

if TYPE_CHECKING:
    from .transaction import Transaction

__all__ = ["RocksError", "TransactionError", "HandleClosedError", "call"]


class RocksError(Exception):
    """
    A failure reported by the engine.

    Carries the engine's message verbatim. The engine's own condition
    (corruption, lock timeout, deadlock, busy, ...) is part of the message
    and is not mapped to subclasses.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @classmethod
    def drain(cls, lib: Any, errptr: Any) -> RocksError:
        """
        Copy an engine error string into a new error and free the original.

        Args:
            lib: Native library that allocated the string
            errptr: Non-NULL ``char *`` holding the message

        Returns:
            The error (not raised)
        """
        try:
            message = ffi.string(errptr).decode("utf-8", "replace")
        finally:
            lib.rocksdb_free(errptr)
        return cls(message)


class TransactionError(RocksError):
    """
    A commit or rollback that the engine refused.

    The transaction is handed back still active, so the caller can retry,
    inspect it, or close it.
    Iterators and snapshots borrowed from it were already closed before
    the engine call and stay closed.
    """

    def __init__(self, transaction: Transaction, error: RocksError):
        super().__init__(error.message)
        self.transaction = transaction
        self.error = error

    def unwrap(self) -> tuple[Transaction, RocksError]:
        return self.transaction, self.error


class HandleClosedError(RuntimeError):
    """A handle was used after it was closed, consumed, or invalidated."""


def call(lib: Any, fn: Callable[..., Any], *args: Any) -> Any:
    """
    Invoke ``fn(*args, errptr)`` and convert the error slot into an exception.

    Args:
        lib: Native library (used to free the error string)
        fn: Native function whose last parameter is ``char **errptr``
        *args: Arguments preceding ``errptr``

    Returns:
        Whatever ``fn`` returned, when the error slot stayed NULL

    Raises:
        RocksError: If the engine filled the error slot
    """
    errptr = ffi.new("char **")
    result = fn(*args, errptr)
    if errptr[0] != ffi.NULL:
        raise RocksError.drain(lib, errptr[0])
    return result
