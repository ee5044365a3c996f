# tests/conftest.py
from __future__ import annotations

import pytest

from fake_rocksdb import FakeRocksLib
from saferocks import _ffi
from saferocks.db import DB
from saferocks.options import Options, ReadOptions, TransactionDBOptions, TransactionOptions, WriteOptions
from saferocks.transaction_db import TransactionDB


@pytest.fixture()
def lib():
    """Install a fresh in-memory librocksdb for the duration of a test."""
    fake = FakeRocksLib()
    previous = _ffi.set_library(fake)
    try:
        yield fake
    finally:
        _ffi.set_library(previous)


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "db")


def _new_options() -> Options:
    opts = Options()
    opts.set_create_if_missing(True)
    opts.set_error_if_exists(True)
    return opts


@pytest.fixture()
def db(lib, db_path):
    with _new_options() as opts:
        database = DB.open(opts, db_path)
    yield database
    database.close()


@pytest.fixture()
def txn_db(lib, db_path):
    with _new_options() as opts, TransactionDBOptions() as txn_db_opts:
        database = TransactionDB.open(opts, txn_db_opts, db_path)
    yield database
    database.close()


@pytest.fixture()
def read_opts(lib):
    with ReadOptions() as opts:
        yield opts


@pytest.fixture()
def write_opts(lib):
    with WriteOptions() as opts:
        yield opts


@pytest.fixture()
def txn_opts(lib):
    with TransactionOptions() as opts:
        yield opts
