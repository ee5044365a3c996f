# tests/test_iterator.py
from __future__ import annotations

import pytest

from saferocks import HandleClosedError, Iterator, ReadOptions, RocksError


@pytest.fixture()
def filled(db, write_opts):
    db.put(write_opts, "foo1", "bar1")
    db.put(write_opts, "foo2", "bar2")
    return db


def test_traversal(filled, read_opts):
    with filled.create_iterator(read_opts) as it:
        assert not it.valid()

        it.seek_to_first()
        assert it.valid()
        assert it.key() == b"foo1"
        assert it.value() == b"bar1"

        it.next()
        assert it.valid()
        assert it.key() == b"foo2"
        assert it.value() == b"bar2"

        it.next()
        assert not it.valid()

        it.seek_to_last()
        assert it.valid()
        assert it.key() == b"foo2"
        assert it.value() == b"bar2"

        it.prev()
        assert it.valid()
        assert it.key() == b"foo1"
        assert it.value() == b"bar1"

        it.prev()
        assert not it.valid()
        assert it.get_error() is None


def test_seek_and_seek_for_prev(filled, read_opts):
    with filled.create_iterator(read_opts) as it:
        it.seek(b"foo")
        assert it.key() == b"foo1"

        it.seek(b"foo15")
        assert it.key() == b"foo2"

        it.seek(b"foo3")
        assert not it.valid()

        it.seek_for_prev(b"foo3")
        assert it.key() == b"foo2"

        it.seek_for_prev(b"foo15")
        assert it.key() == b"foo1"

        it.seek_for_prev(b"a")
        assert not it.valid()


def test_empty_range_stays_invalid(db, read_opts):
    with db.create_iterator(read_opts) as it:
        it.seek_to_first()
        assert not it.valid()
        it.seek_to_last()
        assert not it.valid()


def test_slice_goes_stale_when_iterator_moves(filled, read_opts):
    with filled.create_iterator(read_opts) as it:
        it.seek_to_first()
        key = it.key()
        kept = bytes(key)
        assert key.valid

        it.next()
        assert not key.valid
        assert repr(key) == "<Slice stale>"
        with pytest.raises(HandleClosedError, match="stale"):
            key.tobytes()
        assert kept == b"foo1"


def test_slice_goes_stale_when_iterator_closes(filled, read_opts):
    it = filled.create_iterator(read_opts)
    it.seek_to_first()
    value = it.value()
    assert repr(value) == "Slice(b'bar1')"
    it.close()
    with pytest.raises(HandleClosedError):
        bytes(value)


def test_slices_are_unhashable(filled, read_opts):
    with filled.create_iterator(read_opts) as it:
        it.seek_to_first()
        with pytest.raises(TypeError):
            hash(it.key())


def test_iterate_bounds(db, write_opts):
    for key in (b"a", b"b", b"c", b"d"):
        db.put(write_opts, key, key.upper())

    with ReadOptions() as ropts:
        ropts.set_iterate_lower_bound(b"b")
        ropts.set_iterate_upper_bound(b"d")
        with db.create_iterator(ropts) as it:
            it.seek_to_first()
            keys = []
            while it.valid():
                keys.append(bytes(it.key()))
                it.next()
    assert keys == [b"b", b"c"]


def test_get_error_is_returned_not_raised(lib, filled, read_opts):
    lib.iterator_error = "Corruption: block checksum mismatch"
    with filled.create_iterator(read_opts) as it:
        it.seek_to_first()
        assert not it.valid()
        error = it.get_error()
    assert isinstance(error, RocksError)
    assert error.message == "Corruption: block checksum mismatch"
    assert lib.allocations == {}


def test_iterator_borrows_read_options(lib, filled):
    ropts = ReadOptions()
    it = filled.create_iterator(ropts)
    assert it.source is filled

    ropts.close()
    assert it.closed
    with pytest.raises(HandleClosedError, match="Iterator is closed"):
        it.valid()
    assert "iterator" not in lib.live_handles()


def test_iterator_cannot_be_constructed_directly(lib):
    with pytest.raises(TypeError, match="cannot be created directly"):
        Iterator()
