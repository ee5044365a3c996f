# saferocks/views.py
"""
Byte views returned by the engine.

``Bytes`` owns an engine-allocated buffer (``rocksdb_get`` and friends) and
frees it through ``rocksdb_free`` exactly once. ``Slice`` borrows memory
from an iterator's current position and becomes invalid as soon as that
iterator moves or closes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Union

from ._ffi import ffi
from .errors import HandleClosedError
from .handle import NativeHandle

if TYPE_CHECKING:
    from .iterator import Iterator

__all__ = ["Bytes", "Slice", "BytesLike", "as_bytes", "take_value"]


class _ByteView:
    """Read-only bytes behaviour shared by both views."""

    _len: int

    def _data(self) -> Any:
        raise NotImplementedError

    def tobytes(self) -> bytes:
        """Copy the viewed bytes into a Python ``bytes`` object."""
        return ffi.buffer(self._data(), self._len)[:]

    def __bytes__(self) -> bytes:
        return self.tobytes()

    def decode(self, encoding: str = "utf-8", errors: str = "strict") -> str:
        return self.tobytes().decode(encoding, errors)

    def __len__(self) -> int:
        return self._len

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _ByteView):
            return self.tobytes() == other.tobytes()
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self.tobytes() == bytes(other)
        return NotImplemented

    __hash__ = None


class Bytes(_ByteView, NativeHandle):
    """An engine-allocated value; freed with ``rocksdb_free`` on close or GC."""

    @classmethod
    def _take(cls, lib: Any, ptr: Any, length: int) -> Bytes:
        view = cls._adopt(lib, ptr)
        view._len = length
        return view

    @classmethod
    def _release(cls, lib: Any, ptr: Any, *owners: NativeHandle) -> None:
        lib.rocksdb_free(ptr)

    def _data(self) -> Any:
        return self._handle()

    def __repr__(self) -> str:
        if self.closed:
            return "<Bytes closed>"
        return f"Bytes({self.tobytes()!r})"


class Slice(_ByteView):
    """
    A borrowed view of an iterator's current key or value.

    Valid only while the iterator stays open and unmoved; any access after
    that raises ``HandleClosedError``. Copy with ``bytes(slice)`` to keep
    the data.
    """

    __slots__ = ("_iterator", "_epoch", "_ptr", "_len")

    def __init__(self, iterator: Iterator, ptr: Any, length: int):
        self._iterator = iterator
        self._epoch = iterator._epoch
        self._ptr = ptr
        self._len = length

    @property
    def valid(self) -> bool:
        return not self._iterator.closed and self._iterator._epoch == self._epoch

    def _data(self) -> Any:
        if not self.valid:
            raise HandleClosedError("Slice is stale: its iterator moved or was closed")
        return self._ptr

    def __repr__(self) -> str:
        if not self.valid:
            return "<Slice stale>"
        return f"Slice({self.tobytes()!r})"


def take_value(lib: Any, ptr: Any, length: int) -> Optional[Bytes]:
    """Wrap an engine-allocated result; a NULL result means "not found"."""
    if ptr == ffi.NULL:
        return None
    return Bytes._take(lib, ptr, length)


BytesLike = Union[bytes, bytearray, memoryview, str, _ByteView]


def as_bytes(value: BytesLike, what: str = "key") -> bytes:
    """Normalize a key or value to ``bytes``; ``str`` is encoded as UTF-8."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytearray, memoryview, _ByteView)):
        return bytes(value)
    raise TypeError(f"{what} must be bytes-like or str, got {type(value).__name__}")
