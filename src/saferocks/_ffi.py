# saferocks/_ffi.py
"""cffi declarations for the RocksDB C API and native library loading."""
from __future__ import annotations

import logging
from typing import Any, Optional

from cffi import FFI

from .config import LibraryConfig

logger = logging.getLogger(__name__)

ffi = FFI()

ffi.cdef(
    r"""
    typedef struct rocksdb_t rocksdb_t;
    typedef struct rocksdb_options_t rocksdb_options_t;
    typedef struct rocksdb_readoptions_t rocksdb_readoptions_t;
    typedef struct rocksdb_writeoptions_t rocksdb_writeoptions_t;
    typedef struct rocksdb_flushoptions_t rocksdb_flushoptions_t;
    typedef struct rocksdb_iterator_t rocksdb_iterator_t;
    typedef struct rocksdb_snapshot_t rocksdb_snapshot_t;
    typedef struct rocksdb_writebatch_t rocksdb_writebatch_t;
    typedef struct rocksdb_transactiondb_t rocksdb_transactiondb_t;
    typedef struct rocksdb_transactiondb_options_t rocksdb_transactiondb_options_t;
    typedef struct rocksdb_transaction_t rocksdb_transaction_t;
    typedef struct rocksdb_transaction_options_t rocksdb_transaction_options_t;

    void rocksdb_free(void *ptr);

    /* DB */
    rocksdb_t *rocksdb_open(const rocksdb_options_t *options, const char *name, char **errptr);
    void rocksdb_close(rocksdb_t *db);
    void rocksdb_destroy_db(const rocksdb_options_t *options, const char *name, char **errptr);
    void rocksdb_repair_db(const rocksdb_options_t *options, const char *name, char **errptr);
    void rocksdb_put(rocksdb_t *db, const rocksdb_writeoptions_t *options,
                     const char *key, size_t keylen, const char *val, size_t vallen, char **errptr);
    void rocksdb_delete(rocksdb_t *db, const rocksdb_writeoptions_t *options,
                        const char *key, size_t keylen, char **errptr);
    void rocksdb_write(rocksdb_t *db, const rocksdb_writeoptions_t *options,
                       rocksdb_writebatch_t *batch, char **errptr);
    char *rocksdb_get(rocksdb_t *db, const rocksdb_readoptions_t *options,
                      const char *key, size_t keylen, size_t *vallen, char **errptr);
    void rocksdb_multi_get(rocksdb_t *db, const rocksdb_readoptions_t *options, size_t num_keys,
                           const char *const *keys_list, const size_t *keys_list_sizes,
                           char **values_list, size_t *values_list_sizes, char **errs);
    rocksdb_iterator_t *rocksdb_create_iterator(rocksdb_t *db, const rocksdb_readoptions_t *options);
    const rocksdb_snapshot_t *rocksdb_create_snapshot(rocksdb_t *db);
    void rocksdb_release_snapshot(rocksdb_t *db, const rocksdb_snapshot_t *snapshot);
    char *rocksdb_property_value(rocksdb_t *db, const char *propname);
    void rocksdb_flush(rocksdb_t *db, const rocksdb_flushoptions_t *options, char **errptr);

    /* Options */
    rocksdb_options_t *rocksdb_options_create(void);
    rocksdb_options_t *rocksdb_options_create_copy(rocksdb_options_t *options);
    void rocksdb_options_destroy(rocksdb_options_t *options);
    void rocksdb_options_set_create_if_missing(rocksdb_options_t *options, unsigned char v);
    unsigned char rocksdb_options_get_create_if_missing(rocksdb_options_t *options);
    void rocksdb_options_set_error_if_exists(rocksdb_options_t *options, unsigned char v);
    unsigned char rocksdb_options_get_error_if_exists(rocksdb_options_t *options);
    void rocksdb_options_set_max_background_jobs(rocksdb_options_t *options, int n);
    void rocksdb_options_set_write_buffer_size(rocksdb_options_t *options, size_t s);
    void rocksdb_options_set_level0_file_num_compaction_trigger(rocksdb_options_t *options, int n);
    void rocksdb_options_increase_parallelism(rocksdb_options_t *options, int total_threads);

    rocksdb_readoptions_t *rocksdb_readoptions_create(void);
    void rocksdb_readoptions_destroy(rocksdb_readoptions_t *options);
    void rocksdb_readoptions_set_snapshot(rocksdb_readoptions_t *options, const rocksdb_snapshot_t *snapshot);
    void rocksdb_readoptions_set_iterate_upper_bound(rocksdb_readoptions_t *options,
                                                     const char *key, size_t keylen);
    void rocksdb_readoptions_set_iterate_lower_bound(rocksdb_readoptions_t *options,
                                                     const char *key, size_t keylen);
    void rocksdb_readoptions_set_fill_cache(rocksdb_readoptions_t *options, unsigned char v);
    void rocksdb_readoptions_set_verify_checksums(rocksdb_readoptions_t *options, unsigned char v);

    rocksdb_writeoptions_t *rocksdb_writeoptions_create(void);
    void rocksdb_writeoptions_destroy(rocksdb_writeoptions_t *options);
    void rocksdb_writeoptions_set_sync(rocksdb_writeoptions_t *options, unsigned char v);
    void rocksdb_writeoptions_disable_WAL(rocksdb_writeoptions_t *options, int disable);

    rocksdb_flushoptions_t *rocksdb_flushoptions_create(void);
    void rocksdb_flushoptions_destroy(rocksdb_flushoptions_t *options);
    void rocksdb_flushoptions_set_wait(rocksdb_flushoptions_t *options, unsigned char v);
    unsigned char rocksdb_flushoptions_get_wait(rocksdb_flushoptions_t *options);

    /* Iterator */
    void rocksdb_iter_destroy(rocksdb_iterator_t *iter);
    unsigned char rocksdb_iter_valid(const rocksdb_iterator_t *iter);
    void rocksdb_iter_seek_to_first(rocksdb_iterator_t *iter);
    void rocksdb_iter_seek_to_last(rocksdb_iterator_t *iter);
    void rocksdb_iter_seek(rocksdb_iterator_t *iter, const char *k, size_t klen);
    void rocksdb_iter_seek_for_prev(rocksdb_iterator_t *iter, const char *k, size_t klen);
    void rocksdb_iter_next(rocksdb_iterator_t *iter);
    void rocksdb_iter_prev(rocksdb_iterator_t *iter);
    const char *rocksdb_iter_key(const rocksdb_iterator_t *iter, size_t *klen);
    const char *rocksdb_iter_value(const rocksdb_iterator_t *iter, size_t *vlen);
    void rocksdb_iter_get_error(const rocksdb_iterator_t *iter, char **errptr);

    /* Write batch */
    rocksdb_writebatch_t *rocksdb_writebatch_create(void);
    void rocksdb_writebatch_destroy(rocksdb_writebatch_t *b);
    void rocksdb_writebatch_clear(rocksdb_writebatch_t *b);
    int rocksdb_writebatch_count(rocksdb_writebatch_t *b);
    void rocksdb_writebatch_put(rocksdb_writebatch_t *b, const char *key, size_t klen,
                                const char *val, size_t vlen);
    void rocksdb_writebatch_delete(rocksdb_writebatch_t *b, const char *key, size_t klen);

    /* Transaction DB */
    rocksdb_transactiondb_t *rocksdb_transactiondb_open(const rocksdb_options_t *options,
            const rocksdb_transactiondb_options_t *txn_db_options, const char *name, char **errptr);
    void rocksdb_transactiondb_close(rocksdb_transactiondb_t *txn_db);
    const rocksdb_snapshot_t *rocksdb_transactiondb_create_snapshot(rocksdb_transactiondb_t *txn_db);
    void rocksdb_transactiondb_release_snapshot(rocksdb_transactiondb_t *txn_db,
                                                const rocksdb_snapshot_t *snapshot);
    char *rocksdb_transactiondb_get(rocksdb_transactiondb_t *txn_db, const rocksdb_readoptions_t *options,
                                    const char *key, size_t klen, size_t *vlen, char **errptr);
    void rocksdb_transactiondb_put(rocksdb_transactiondb_t *txn_db, const rocksdb_writeoptions_t *options,
                                   const char *key, size_t klen, const char *val, size_t vlen, char **errptr);
    void rocksdb_transactiondb_delete(rocksdb_transactiondb_t *txn_db, const rocksdb_writeoptions_t *options,
                                      const char *key, size_t klen, char **errptr);
    void rocksdb_transactiondb_write(rocksdb_transactiondb_t *txn_db, const rocksdb_writeoptions_t *options,
                                     rocksdb_writebatch_t *batch, char **errptr);
    void rocksdb_transactiondb_multi_get(rocksdb_transactiondb_t *txn_db,
                                         const rocksdb_readoptions_t *options, size_t num_keys,
                                         const char *const *keys_list, const size_t *keys_list_sizes,
                                         char **values_list, size_t *values_list_sizes, char **errs);
    rocksdb_iterator_t *rocksdb_transactiondb_create_iterator(rocksdb_transactiondb_t *txn_db,
                                                              const rocksdb_readoptions_t *options);

    rocksdb_transactiondb_options_t *rocksdb_transactiondb_options_create(void);
    void rocksdb_transactiondb_options_destroy(rocksdb_transactiondb_options_t *opt);
    void rocksdb_transactiondb_options_set_max_num_locks(rocksdb_transactiondb_options_t *opt,
                                                         int64_t max_num_locks);
    void rocksdb_transactiondb_options_set_num_stripes(rocksdb_transactiondb_options_t *opt,
                                                       size_t num_stripes);
    void rocksdb_transactiondb_options_set_transaction_lock_timeout(rocksdb_transactiondb_options_t *opt,
                                                                    int64_t txn_lock_timeout);
    void rocksdb_transactiondb_options_set_default_lock_timeout(rocksdb_transactiondb_options_t *opt,
                                                                int64_t default_lock_timeout);

    rocksdb_transaction_options_t *rocksdb_transaction_options_create(void);
    void rocksdb_transaction_options_destroy(rocksdb_transaction_options_t *opt);
    void rocksdb_transaction_options_set_set_snapshot(rocksdb_transaction_options_t *opt, unsigned char v);
    void rocksdb_transaction_options_set_deadlock_detect(rocksdb_transaction_options_t *opt, unsigned char v);
    void rocksdb_transaction_options_set_lock_timeout(rocksdb_transaction_options_t *opt, int64_t lock_timeout);
    void rocksdb_transaction_options_set_expiration(rocksdb_transaction_options_t *opt, int64_t expiration);
    void rocksdb_transaction_options_set_deadlock_detect_depth(rocksdb_transaction_options_t *opt, int64_t depth);
    void rocksdb_transaction_options_set_max_write_batch_size(rocksdb_transaction_options_t *opt, size_t size);

    /* Transaction */
    rocksdb_transaction_t *rocksdb_transaction_begin(rocksdb_transactiondb_t *txn_db,
            const rocksdb_writeoptions_t *write_options,
            const rocksdb_transaction_options_t *txn_options,
            rocksdb_transaction_t *old_txn);
    void rocksdb_transaction_commit(rocksdb_transaction_t *txn, char **errptr);
    void rocksdb_transaction_rollback(rocksdb_transaction_t *txn, char **errptr);
    void rocksdb_transaction_set_savepoint(rocksdb_transaction_t *txn);
    void rocksdb_transaction_rollback_to_savepoint(rocksdb_transaction_t *txn, char **errptr);
    void rocksdb_transaction_destroy(rocksdb_transaction_t *txn);
    const rocksdb_snapshot_t *rocksdb_transaction_get_snapshot(rocksdb_transaction_t *txn);
    char *rocksdb_transaction_get(rocksdb_transaction_t *txn, const rocksdb_readoptions_t *options,
                                  const char *key, size_t klen, size_t *vlen, char **errptr);
    char *rocksdb_transaction_get_for_update(rocksdb_transaction_t *txn, const rocksdb_readoptions_t *options,
                                             const char *key, size_t klen, size_t *vlen,
                                             unsigned char exclusive, char **errptr);
    void rocksdb_transaction_put(rocksdb_transaction_t *txn, const char *key, size_t klen,
                                 const char *val, size_t vlen, char **errptr);
    void rocksdb_transaction_delete(rocksdb_transaction_t *txn, const char *key, size_t klen, char **errptr);
    rocksdb_iterator_t *rocksdb_transaction_create_iterator(rocksdb_transaction_t *txn,
                                                            const rocksdb_readoptions_t *options);
    """
)

_library: Optional[Any] = None


def load_library(config: Optional[LibraryConfig] = None) -> Any:
    """
    Open librocksdb, trying each candidate from the configuration in order.

    Args:
        config: Where to look. Defaults to ``LibraryConfig.from_env()``.

    Returns:
        The cffi library object.

    Raises:
        OSError: If no candidate could be opened.
    """
    config = config or LibraryConfig.from_env()
    tried = []
    for candidate in config.candidates():
        try:
            lib = ffi.dlopen(candidate)
        except OSError as exc:
            tried.append(f"{candidate}: {exc}")
            continue
        logger.info("Loaded RocksDB library from %s", candidate)
        return lib

    logger.error("Could not load librocksdb (tried %d candidates)", len(tried))
    raise OSError(
        "Could not load librocksdb. Install RocksDB or point "
        f"{LibraryConfig.ENV_VAR} at the shared library. Tried: " + "; ".join(tried)
    )


def get_library() -> Any:
    """Return the process-wide native library, loading it on first use."""
    global _library
    if _library is None:
        _library = load_library()
    return _library


def set_library(lib: Optional[Any]) -> Optional[Any]:
    """
    Replace the process-wide native library and return the previous one.

    Handles already created keep the library they were created with.
    Passing ``None`` makes the next ``get_library()`` load it again.
    """
    global _library
    previous = _library
    _library = lib
    return previous
