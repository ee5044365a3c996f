# tests/test_snapshot.py
from __future__ import annotations

import gc

import pytest

from saferocks import DB, NULL_SNAPSHOT, HandleClosedError, Options, OwnedSnapshot, ReadOptions


def test_snapshot_reads_past_state(db, write_opts):
    sp = db.create_snapshot()
    assert isinstance(sp, OwnedSnapshot)
    assert sp.db is db

    db.put(write_opts, "foo", "bar")

    with ReadOptions() as read_op:
        assert db.get(read_op, "foo") == b"bar"

        read_op.set_snapshot(sp)
        assert read_op.snapshot is sp
        assert db.get(read_op, "foo") is None

        read_op.set_snapshot(NULL_SNAPSHOT)
        assert read_op.snapshot is None
        assert db.get(read_op, "foo") == b"bar"
    sp.close()


def test_snapshot_iterator_sees_frozen_view(db, write_opts):
    db.put(write_opts, b"a", b"1")
    with db.create_snapshot() as sp, ReadOptions() as ropts:
        db.put(write_opts, b"b", b"2")
        ropts.set_snapshot(sp)
        with db.create_iterator(ropts) as it:
            it.seek_to_first()
            keys = []
            while it.valid():
                keys.append(it.key().tobytes())
                it.next()
    assert keys == [b"a"]


def test_released_snapshot_cannot_be_read_through(lib, db):
    sp = db.create_snapshot()
    with ReadOptions() as ropts:
        ropts.set_snapshot(sp)
        sp.close()
        with pytest.raises(HandleClosedError, match="released snapshot"):
            db.get(ropts, b"k")

        ropts.set_snapshot(NULL_SNAPSHOT)
        assert db.get(ropts, b"k") is None


def test_closed_snapshot_cannot_be_attached(db):
    sp = db.create_snapshot()
    sp.close()
    with ReadOptions() as ropts:
        with pytest.raises(HandleClosedError, match="OwnedSnapshot is closed"):
            ropts.set_snapshot(sp)


def test_snapshot_released_through_its_database(lib, db):
    sp = db.create_snapshot()
    assert lib.live_handles()["snapshot"] == 1
    del sp
    gc.collect()
    assert "snapshot" not in lib.live_handles()


def test_read_options_keep_snapshot_alive(lib, db):
    ropts = ReadOptions()
    ropts.set_snapshot(db.create_snapshot())
    gc.collect()
    assert lib.live_handles()["snapshot"] == 1
    assert db.get(ropts, b"k") is None
    ropts.close()


def test_null_snapshot_is_inert():
    assert not NULL_SNAPSHOT.closed
    NULL_SNAPSHOT.close()
    assert repr(NULL_SNAPSHOT) == "NULL_SNAPSHOT"


def test_read_options_reset_after_database_close_releases_snapshot(lib, db_path):
    with Options() as opts:
        opts.set_create_if_missing(True)
        database = DB.open(opts, db_path)
    sp = database.create_snapshot()
    with ReadOptions() as ropts:
        ropts.set_snapshot(sp)
        database.close()
        assert sp.closed

        ropts.set_fill_cache(False)
        ropts.set_verify_checksums(True)
        ropts.set_iterate_lower_bound(b"a")
        ropts.set_iterate_upper_bound(b"z")
        ropts.set_snapshot(NULL_SNAPSHOT)
        assert ropts.snapshot is None
        assert lib.state_of(ropts).snapshot is None
