# saferocks/handle.py
"""
Ownership of native handles.

A ``NativeHandle`` owns exactly one engine pointer and destroys it exactly
once: on ``close()``, on leaving a ``with`` block, or when the object is
garbage collected (``weakref.finalize`` runs at most once).

Borrowing is expressed at runtime. A handle created from another handle
(an iterator from a database, a snapshot from a database, a transaction
from a transactional database, ...) is adopted with its owners:

* the borrower keeps strong references to its owners, and so does its
  finalizer, so an owner can never be collected while a borrower is alive;
* each owner tracks its live borrowers and closes them before closing
  itself, so an explicit ``close()`` never leaves a dangling borrower;
* every access goes through ``_handle()``, which raises
  ``HandleClosedError`` instead of returning a destroyed pointer.

Handles are not locked. Closing a handle while another thread is inside a
call on it is a caller error.
"""
from __future__ import annotations

import weakref
from typing import Any, ClassVar, Optional

from ._ffi import get_library
from .errors import HandleClosedError

__all__ = ["NativeHandle"]


class NativeHandle:
    """Owns one native pointer, paired create/destroy, destroyed exactly once."""

    _CREATE_FN: ClassVar[Optional[str]] = None
    _DESTROY_FN: ClassVar[Optional[str]] = None

    def __init__(self, lib: Optional[Any] = None):
        if self._CREATE_FN is None:
            raise TypeError(f"{type(self).__name__} cannot be created directly")
        lib = lib if lib is not None else get_library()
        self._attach(lib, getattr(lib, self._CREATE_FN)())

    @classmethod
    def _adopt(cls, lib: Any, ptr: Any, *owners: NativeHandle):
        """Take ownership of a pointer the engine produced, borrowing ``owners``."""
        obj = cls.__new__(cls)
        obj._attach(lib, ptr, *owners)
        return obj

    def _attach(self, lib: Any, ptr: Any, *owners: NativeHandle) -> None:
        self._lib = lib
        self._ptr = ptr
        self._owners = owners
        self._borrowers: weakref.WeakSet[NativeHandle] = weakref.WeakSet()
        # Class-level callback; a bound method would keep self alive.
        self._finalizer = weakref.finalize(self, type(self)._release, lib, ptr, *owners)
        for owner in owners:
            owner._borrowers.add(self)

    @classmethod
    def _release(cls, lib: Any, ptr: Any, *owners: NativeHandle) -> None:
        getattr(lib, cls._DESTROY_FN)(ptr)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def _closed_message(self) -> str:
        return f"{type(self).__name__} is closed"

    def _handle(self) -> Any:
        """Return the live pointer, or raise if it was destroyed or handed off."""
        if not self._finalizer.alive:
            raise HandleClosedError(self._closed_message())
        return self._ptr

    def _close_borrowers(self) -> None:
        for borrower in list(self._borrowers):
            borrower.close()

    def _forget_owners(self) -> None:
        for owner in self._owners:
            owner._borrowers.discard(self)

    def _detach(self) -> Any:
        """Give up ownership without destroying; the caller now owns the pointer."""
        ptr = self._handle()
        self._finalizer.detach()
        self._forget_owners()
        return ptr

    def close(self) -> None:
        """Close live borrowers, then destroy the handle. Safe to call twice."""
        if not self._finalizer.alive:
            return
        self._close_borrowers()
        self._finalizer()
        self._forget_owners()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<{type(self).__name__} {state}>"
