# saferocks/config.py
"""Configuration for loading the native library and opening databases."""
from __future__ import annotations

import ctypes.util
import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

if TYPE_CHECKING:
    from .options import Options


@dataclass(frozen=True)
class LibraryConfig:
    """Where to find the librocksdb shared library."""

    ENV_VAR = "SAFEROCKS_LIBRARY"

    path: Optional[str] = None  # Explicit path, tried first

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> LibraryConfig:
        """Build a config from ``SAFEROCKS_LIBRARY`` (unset means search)."""
        environ = os.environ if environ is None else environ
        return cls(path=environ.get(cls.ENV_VAR) or None)

    def candidates(self) -> list[str]:
        """Library names/paths to try, most specific first, without duplicates."""
        names: list[str] = []
        if self.path:
            names.append(self.path)

        found = ctypes.util.find_library("rocksdb")
        if found:
            names.append(found)

        if sys.platform == "win32":
            names += ["rocksdb.dll", "librocksdb.dll"]
        elif sys.platform == "darwin":
            names += ["librocksdb.dylib", "/opt/homebrew/lib/librocksdb.dylib",
                      "/usr/local/lib/librocksdb.dylib"]
        else:
            names += ["librocksdb.so", "librocksdb.so.9", "librocksdb.so.8",
                      "/usr/local/lib/librocksdb.so"]

        unique: list[str] = []
        for name in names:
            if name not in unique:
                unique.append(name)
        return unique


@dataclass(frozen=True)
class DBConfig:
    """Database options applied at open time."""

    create_if_missing: bool = True
    error_if_exists: bool = False

    # Tuning
    background_jobs: Optional[int] = None  # If None, max(4, cpu_count)
    write_buffer_size: int = 256 * 1024 * 1024
    l0_compaction_trigger: int = 12

    def resolved_background_jobs(self) -> int:
        if self.background_jobs is not None:
            return int(self.background_jobs)
        return max(4, (os.cpu_count() or 4))

    def to_options(self, lib: Optional[Any] = None) -> Options:
        """
        Build a native ``Options`` handle carrying this configuration.

        The caller owns the returned handle and should close it (or use it
        as a context manager) once the database is open.
        """
        from .options import Options

        opts = Options(lib)
        opts.set_create_if_missing(self.create_if_missing)
        opts.set_error_if_exists(self.error_if_exists)
        opts.set_max_background_jobs(self.resolved_background_jobs())
        opts.set_write_buffer_size(self.write_buffer_size)
        opts.set_level0_file_num_compaction_trigger(self.l0_compaction_trigger)
        return opts
