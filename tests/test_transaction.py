# tests/test_transaction.py
from __future__ import annotations

import pytest

from saferocks import (
    BorrowedSnapshot,
    HandleClosedError,
    Options,
    ReadOptions,
    ReusableTransaction,
    RocksError,
    TransactionDB,
    TransactionDBOptions,
    TransactionError,
    TransactionOptions,
    TransactionState,
    WriteBatch,
)


# --- TransactionDB -------------------------------------------------------- #

def test_open_and_point_operations(txn_db, read_opts, write_opts):
    assert txn_db.get(read_opts, "foo") is None

    txn_db.put(write_opts, "foo", "bar")
    assert txn_db.get(read_opts, "foo") == b"bar"

    txn_db.delete(write_opts, "foo")
    assert txn_db.get(read_opts, "foo") is None


def test_open_logs_and_raises_on_failure(lib, db_path, caplog):
    lib.fail["rocksdb_transactiondb_open"] = "IO error: permission denied"
    with Options() as opts, TransactionDBOptions() as txn_db_opts:
        with pytest.raises(RocksError, match="permission denied"):
            TransactionDB.open(opts, txn_db_opts, db_path)
    assert "Failed to open TransactionDB" in caplog.text


def test_write_batch_and_multi_get(txn_db, read_opts, write_opts):
    with WriteBatch() as wb:
        wb.put("foo", "bar")
        wb.put("bar", "baz")
        txn_db.write(write_opts, wb)
    assert txn_db.multi_get(read_opts, ["foo", "bar", "nope"]) == [b"bar", b"baz", None]


def test_db_snapshot(txn_db, write_opts):
    sp = txn_db.create_snapshot()
    txn_db.put(write_opts, "foo", "bar")
    with ReadOptions() as ropts:
        ropts.set_snapshot(sp)
        assert txn_db.get(ropts, "foo") is None
    sp.close()


def test_db_iterator(txn_db, read_opts, write_opts):
    txn_db.put(write_opts, "foo1", "bar1")
    txn_db.put(write_opts, "foo2", "bar2")
    with txn_db.create_iterator(read_opts) as it:
        it.seek_to_last()
        assert it.key() == b"foo2"
        it.prev()
        assert it.value() == b"bar1"


# --- Transaction ---------------------------------------------------------- #

def test_transaction_get_put_delete(txn_db, read_opts, write_opts, txn_opts):
    with txn_db.begin(write_opts, txn_opts) as txn:
        assert txn.state is TransactionState.ACTIVE
        assert txn.db is txn_db
        assert txn.get(read_opts, "foo") is None

        txn.put("foo", "bar")
        assert txn.get(read_opts, "foo") == b"bar"

        txn.delete("foo")
        assert txn.get(read_opts, "foo") is None


def test_commit_publishes_writes(txn_db, read_opts, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    txn.put("foo", "bar")
    assert txn_db.get(read_opts, "foo") is None

    token = txn.commit()

    assert isinstance(token, ReusableTransaction)
    assert txn.state is TransactionState.COMMITTED
    assert txn.closed
    assert txn_db.get(read_opts, "foo") == b"bar"
    token.close()


def test_committed_transaction_is_consumed(txn_db, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    txn.commit()
    with pytest.raises(HandleClosedError, match="Transaction is committed"):
        txn.put(b"k", b"v")
    with pytest.raises(HandleClosedError):
        txn.commit()
    assert repr(txn) == "<Transaction committed>"


def test_rollback_discards_writes(txn_db, read_opts, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    txn.put(b"k", b"v")
    txn.rollback()
    assert txn.state is TransactionState.ROLLED_BACK
    assert txn_db.get(read_opts, b"k") is None
    with pytest.raises(HandleClosedError, match="rolled back"):
        txn.get(read_opts, b"k")


def test_closing_active_transaction_discards_writes(lib, txn_db, read_opts, write_opts, txn_opts):
    with txn_db.begin(write_opts, txn_opts) as txn:
        txn.put(b"k", b"v")
    assert txn.state is TransactionState.ACTIVE
    assert repr(txn) == "<Transaction closed>"
    assert txn_db.get(read_opts, b"k") is None
    assert "txn" not in lib.live_handles()


def test_reuse_recycles_native_handle(lib, txn_db, read_opts, write_opts, txn_opts):
    first = txn_db.begin(write_opts, txn_opts)
    first_ptr = first._ptr
    first.put(b"a", b"1")
    token = first.commit()

    second = txn_db.begin(write_opts, txn_opts, reuse=token)
    assert second._ptr == first_ptr
    assert lib.state_of(second).begins == 2
    assert lib.live_handles()["txn"] == 1
    assert token.closed

    second.put(b"b", b"2")
    second.commit().close()
    assert txn_db.multi_get(read_opts, [b"a", b"b"]) == [b"1", b"2"]


def test_token_can_be_used_once(txn_db, write_opts, txn_opts):
    token = txn_db.begin(write_opts, txn_opts).rollback()
    txn_db.begin(write_opts, txn_opts, reuse=token).close()
    with pytest.raises(HandleClosedError, match="already reused"):
        txn_db.begin(write_opts, txn_opts, reuse=token)


def test_token_from_another_database_is_rejected(lib, txn_db, tmp_path, write_opts, txn_opts):
    with Options() as opts, TransactionDBOptions() as txn_db_opts:
        opts.set_create_if_missing(True)
        other = TransactionDB.open(opts, txn_db_opts, str(tmp_path / "other"))
    token = other.begin(write_opts, txn_opts).commit()

    with pytest.raises(ValueError, match="different TransactionDB"):
        txn_db.begin(write_opts, txn_opts, reuse=token)
    assert not token.closed
    other.close()
    assert token.closed


def test_failed_commit_returns_active_transaction(lib, txn_db, read_opts, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    txn.put(b"k", b"v")
    lib.fail["rocksdb_transaction_commit"] = "Resource busy: write conflict"

    with pytest.raises(TransactionError) as exc_info:
        txn.commit()

    returned, error = exc_info.value.unwrap()
    assert returned is txn
    assert isinstance(error, RocksError)
    assert error.message == "Resource busy: write conflict"
    assert exc_info.value.message == error.message
    assert txn.state is TransactionState.ACTIVE
    assert not txn.closed
    assert lib.allocations == {}

    returned.commit().close()
    assert txn_db.get(read_opts, b"k") == b"v"


def test_failed_commit_still_closes_borrowers(lib, txn_db, read_opts, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    it = txn.create_iterator(read_opts)
    lib.fail["rocksdb_transaction_commit"] = "Resource busy: write conflict"

    with pytest.raises(TransactionError):
        txn.commit()

    assert txn.state is TransactionState.ACTIVE
    assert it.closed
    assert "iterator" not in lib.live_handles()
    txn.close()


def test_failed_rollback_returns_active_transaction(lib, txn_db, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    lib.fail["rocksdb_transaction_rollback"] = "IO error: rollback failed"
    with pytest.raises(TransactionError) as exc_info:
        txn.rollback()
    assert exc_info.value.transaction is txn
    assert txn.state is TransactionState.ACTIVE
    txn.close()


def test_savepoints(txn_db, read_opts, write_opts, txn_opts):
    with txn_db.begin(write_opts, txn_opts) as txn:
        txn.put(b"a", b"1")
        txn.set_savepoint()
        txn.put(b"b", b"2")
        txn.rollback_to_savepoint()

        assert txn.get(read_opts, b"a") == b"1"
        assert txn.get(read_opts, b"b") is None
        assert txn.state is TransactionState.ACTIVE

        with pytest.raises(RocksError, match="NotFound"):
            txn.rollback_to_savepoint()


def test_get_for_update_conflict(txn_db, read_opts, write_opts, txn_opts):
    txn_db.put(write_opts, b"k", b"v0")
    first = txn_db.begin(write_opts, txn_opts)
    second = txn_db.begin(write_opts, txn_opts)

    assert first.get_for_update(read_opts, b"k") == b"v0"
    with pytest.raises(RocksError, match="Timeout"):
        second.get_for_update(read_opts, b"k", exclusive=False)
    with pytest.raises(RocksError, match="Timeout"):
        txn_db.put(write_opts, b"k", b"outside")

    first.put(b"k", b"v1")
    first.commit().close()
    assert second.get_for_update(read_opts, b"k") == b"v1"
    second.rollback().close()


def test_transaction_iterator_sees_own_writes(txn_db, read_opts, write_opts, txn_opts):
    txn_db.put(write_opts, b"a", b"1")
    txn_db.put(write_opts, b"c", b"3")
    with txn_db.begin(write_opts, txn_opts) as txn:
        txn.put(b"b", b"2")
        txn.delete(b"c")
        with txn.create_iterator(read_opts) as it:
            assert it.source is txn
            it.seek_to_first()
            seen = []
            while it.valid():
                seen.append((bytes(it.key()), bytes(it.value())))
                it.next()
    assert seen == [(b"a", b"1"), (b"b", b"2")]


def test_commit_closes_borrowed_iterators(lib, txn_db, read_opts, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    it = txn.create_iterator(read_opts)
    txn.commit().close()
    assert it.closed
    assert "iterator" not in lib.live_handles()


def test_get_snapshot_requires_set_snapshot(txn_db, write_opts, txn_opts):
    with txn_db.begin(write_opts, txn_opts) as txn:
        assert txn.get_snapshot() is None


def test_borrowed_snapshot(lib, txn_db, write_opts):
    txn_db.put(write_opts, b"k", b"old")
    with TransactionOptions() as topts:
        topts.set_set_snapshot(True)
        txn = txn_db.begin(write_opts, topts)
    snap = txn.get_snapshot()
    assert isinstance(snap, BorrowedSnapshot)

    txn_db.put(write_opts, b"k", b"new")
    with ReadOptions() as ropts:
        ropts.set_snapshot(snap)
        assert txn.get(ropts, b"k") == b"old"

        token = txn.commit()
        assert snap.closed
        with pytest.raises(HandleClosedError, match="released snapshot"):
            txn_db.get(ropts, b"k")
    token.close()
    assert lib.allocations == {}


def test_snapshot_conflict_detected(txn_db, read_opts, write_opts):
    with TransactionOptions() as topts:
        topts.set_set_snapshot(True)
        txn = txn_db.begin(write_opts, topts)
    txn_db.put(write_opts, b"k", b"changed")
    with pytest.raises(RocksError, match="Resource busy"):
        txn.put(b"k", b"mine")
    txn.close()


def test_closing_database_cascades_to_transactions(lib, txn_db, write_opts, txn_opts):
    active = txn_db.begin(write_opts, txn_opts)
    token = txn_db.begin(write_opts, txn_opts).commit()
    txn_db.close()

    assert active.closed
    assert token.closed
    with pytest.raises(HandleClosedError, match="TransactionDB"):
        txn_db.begin(write_opts, txn_opts)
    assert "txn" not in lib.live_handles()
    assert "txndb" not in lib.live_handles()


def test_transaction_options_pass_through(lib):
    with TransactionOptions() as topts:
        topts.set_deadlock_detect(True)
        topts.set_lock_timeout(100)
        topts.set_expiration(5000)
        topts.set_deadlock_detect_depth(50)
        topts.set_max_write_batch_size(1024)
        assert lib.state_of(topts).settings == {
            "deadlock_detect": 1,
            "lock_timeout": 100,
            "expiration": 5000,
            "deadlock_detect_depth": 50,
            "max_write_batch_size": 1024,
        }

    with TransactionDBOptions() as txn_db_opts:
        txn_db_opts.set_max_num_locks(-1)
        txn_db_opts.set_num_stripes(16)
        txn_db_opts.set_transaction_lock_timeout(1000)
        txn_db_opts.set_default_lock_timeout(1000)
        assert lib.state_of(txn_db_opts).settings["num_stripes"] == 16


def test_reused_transaction_starts_clean(txn_db, read_opts, write_opts, txn_opts):
    txn = txn_db.begin(write_opts, txn_opts)
    txn.set_savepoint()
    txn.put(b"k", b"v")
    token = txn.rollback()

    with txn_db.begin(write_opts, txn_opts, reuse=token) as fresh:
        assert fresh.state is TransactionState.ACTIVE
        assert fresh.get(read_opts, b"k") is None
        with pytest.raises(RocksError, match="NotFound"):
            fresh.rollback_to_savepoint()
