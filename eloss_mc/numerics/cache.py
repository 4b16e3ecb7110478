"""
Fingerprints and the interpolation table cache.

A fingerprint is a pure function of configuration: SHA-1 over a
canonical text encoding of nested tuples of strings, numbers and enums
(floats encoded exactly with float.hex), truncated to 64 bits. It is
stable across processes and interpreter runs, which makes it usable both
as an in-memory cache key and as the file name of a persisted table.

Tables are stored one per HDF5 file named `<name>_<fingerprint>.h5`.
"""

import hashlib
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

import h5py
import numpy as np

from eloss_mc.numerics.interpolant import Interpolant1D, Interpolant2D

logger = logging.getLogger(__name__)

Table = Union[Interpolant1D, Interpolant2D]


def _encode(part) -> str:
    if isinstance(part, (bool, np.bool_)) or part is None:
        part = None if part is None else bool(part)
        return repr(part)
    if isinstance(part, Enum):
        return f"{type(part).__name__}.{part.name}"
    if isinstance(part, (float, np.floating)):
        return float(part).hex()
    if isinstance(part, (int, np.integer)):
        return str(int(part))
    if isinstance(part, str):
        return repr(part)
    if isinstance(part, (tuple, list)):
        return "(" + ",".join(_encode(p) for p in part) + ")"
    if isinstance(part, dict):
        items = sorted(part.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{_encode(k)}:{_encode(v)}" for k, v in items) + "}"
    if hasattr(part, "fingerprint_parts"):
        return _encode(part.fingerprint_parts())
    raise TypeError(f"Cannot fingerprint object of type {type(part).__name__}")


def fingerprint(*parts) -> int:
    """
    Deterministic 64-bit identity of a configuration.

    Parameters:
        *parts: Strings, numbers, enums, nested tuples/dicts, or objects
            exposing fingerprint_parts()

    Returns:
        Unsigned 64-bit integer
    """
    digest = hashlib.sha1(_encode(parts).encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def table_filename(name: str, key: int) -> str:
    return f"{name}_{key:016x}.h5"


class TableCache:
    """
    Write-once store of built tables keyed by (fingerprint, name).

    A table is built by exactly one caller: concurrent requests for the
    same key wait on a per-key lock and then share the result. Tables are
    looked up in memory, then in `path` and `readonly_paths` on disk,
    and only then built; new tables are written to `path` when `save`
    is set.

    Usage:
        cache = TableCache(path="/tmp/tables")
        table = cache.get_or_build("dedx", key, definition.build)
    """

    def __init__(self, path: Optional[str] = None,
                 readonly_paths: Iterable[str] = (), save: bool = True):
        self.path = Path(path) if path else None
        self.readonly_paths = tuple(Path(p) for p in readonly_paths)
        self.save = save

        self._tables: Dict[Tuple[int, str], Table] = {}
        self._locks: Dict[Tuple[int, str], threading.Lock] = {}
        self._guard = threading.Lock()

    @classmethod
    def from_interpolation_def(cls, interpolation_def) -> "TableCache":
        return cls(path=interpolation_def.path_to_tables,
                   readonly_paths=interpolation_def.readonly_paths,
                   save=interpolation_def.save_tables)

    def __contains__(self, item: Tuple[int, str]) -> bool:
        return item in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    def _lock_for(self, key: Tuple[int, str]) -> threading.Lock:
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    def get_or_build(self, name: str, key: int,
                     build: Callable[[], Table]) -> Table:
        """
        Return the table for (key, name), building it at most once.

        Parameters:
            name: Table purpose, e.g. 'dedx' or 'dndx_0'
            key: Fingerprint of everything the table depends on
            build: Zero-argument callable producing the table

        Returns:
            Interpolant1D or Interpolant2D
        """
        slot = (key, name)
        table = self._tables.get(slot)
        if table is not None:
            logger.debug("Table cache hit: %s", table_filename(name, key))
            return table

        with self._lock_for(slot):
            table = self._tables.get(slot)
            if table is not None:
                return table

            table = self._load(name, key)
            if table is None:
                logger.info("Building table %s", table_filename(name, key))
                table = build()
                if self.save and self.path is not None:
                    self._store(name, key, table)

            self._tables[slot] = table
            return table

    def _candidates(self, name: str, key: int):
        filename = table_filename(name, key)
        directories = ((self.path,) if self.path else ()) + self.readonly_paths
        for directory in directories:
            yield directory / filename

    def _load(self, name: str, key: int) -> Optional[Table]:
        for candidate in self._candidates(name, key):
            if candidate.exists():
                logger.info("Loading table %s", candidate)
                return load_table(candidate)
        return None

    def _store(self, name: str, key: int, table: Table) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        target = self.path / table_filename(name, key)
        save_table(target, table)
        logger.info("Saved table %s", target)


def save_table(path, table: Table) -> None:
    """Write a table to an HDF5 file (overwrites)."""
    path = Path(path)
    tmp = path.with_suffix(".h5.tmp")
    with h5py.File(tmp, "w") as f:
        table.save_hdf5(f.create_group("table"))
    tmp.replace(path)


def load_table(path) -> Table:
    """Read a table written by save_table()."""
    with h5py.File(path, "r") as f:
        group = f["table"]
        kind = group.attrs["kind"]
        if isinstance(kind, bytes):
            kind = kind.decode()
        if kind == "2d":
            return Interpolant2D.load_hdf5(group)
        return Interpolant1D.load_hdf5(group)
