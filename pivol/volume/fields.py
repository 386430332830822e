"""
pivol/volume/fields.py
----------------------
Keep metadata in register with the data matrix.

`index_fields` slices every field of a table with the same index when the
data is indexed; `append_fields` concatenates the fields two tables share
when their volumes are stacked.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Optional, Union

import numpy as np

from .exceptions import TypeMismatch
from .meta import UNSET, MetaTable, field_length

logger = logging.getLogger(__name__)

IndexLike = Union[None, str, int, slice, np.ndarray, list]

# index specifiers meaning "the whole axis"
_ALL = (":", "all")


def resolve_index(index: IndexLike, length: int) -> np.ndarray:
    """
    Convert an axis index into an array of integer positions.

    Parameters
    ----------
    index : None, ':', 'all', slice, int, bool mask or integer positions
        Selection along one axis. A single integer is wrapped in a list so
        the axis is preserved.
    length : int
        Length of the axis being indexed.

    Returns
    -------
    np.ndarray
        Integer positions (may repeat, may be empty).
    """
    if index is None or (isinstance(index, str) and index in _ALL):
        return np.arange(length)
    if isinstance(index, str):
        raise IndexError(f"Unknown index specifier '{index}'. Use ':' or 'all'.")
    if isinstance(index, slice):
        return np.arange(length)[index]
    if isinstance(index, (int, np.integer)) and not isinstance(index, (bool, np.bool_)):
        index = [index]

    arr = np.asarray(index)
    if arr.dtype.kind == "b":
        if arr.shape != (length,):
            raise IndexError(
                f"Boolean index has shape {arr.shape}, expected ({length},)."
            )
        return np.flatnonzero(arr)
    if arr.size == 0:
        return np.array([], dtype=np.intp)
    if arr.dtype.kind not in ("i", "u") or arr.ndim != 1:
        raise IndexError(f"Index must be a boolean mask or integer positions, got {arr.dtype} {arr.shape}.")
    if np.any(arr >= length) or np.any(arr < -length):
        raise IndexError(f"Index out of bounds for axis with length {length}.")
    return arr.astype(np.intp)


def index_fields(table: MetaTable, index: IndexLike, length: Optional[int] = None) -> MetaTable:
    """
    Return a new table where every set field has been indexed with `index`.

    Unset fields are carried through as `UNSET` whatever the index. The input
    table is left unmodified.

    Parameters
    ----------
    table : MetaTable
        Source table.
    index : index-like
        See `resolve_index`.
    length : int, optional
        Axis length. Inferred from the first set field when omitted.
    """
    if length is None:
        length = next((field_length(v) for v in table.values() if v is not UNSET), 0)
    positions = resolve_index(index, length)

    out = MetaTable()
    for name, values in table.items():
        # special treatment of empties since we can't index these
        out[name] = UNSET if values is UNSET else values[positions]
    return out


def _append_values(name: str, old: Any, new: Any, axis: int) -> Any:
    if isinstance(old, Mapping) or isinstance(new, Mapping):
        if not (isinstance(old, Mapping) and isinstance(new, Mapping)):
            raise TypeMismatch(f"Cannot append table and array for field '{name}'.")
        return append_fields(old, new, axis)
    if old is UNSET:
        return deepcopy(new)
    if new is UNSET:
        return deepcopy(old)
    return np.concatenate([np.atleast_1d(old), np.atleast_1d(new)], axis=axis)


def append_fields(base: Mapping, incoming: Mapping, axis: int = 0) -> Mapping:
    """
    Merge two tables, concatenating the fields they share.

    Shared fields that are themselves tables are merged recursively; fields
    only in `incoming` are adopted under their own name and fields only in
    `base` keep their value. Neither input is modified.

    Parameters
    ----------
    base, incoming : MetaTable or dict
        Tables to merge. The result has the type of `base`.
    axis : int, default=0
        Concatenation axis for array fields. Metadata fields are
        one-dimensional per axis, so stacking volumes uses 0.

    Examples
    --------
    >>> out = append_fields({'chunks': np.array([1, 1])},
    ...                     {'chunks': np.array([2]), 'run': np.array([7])})
    >>> out['chunks'], out['run']
    (array([1, 1, 2]), array([7]))
    """
    out = base.copy() if isinstance(base, MetaTable) else deepcopy(dict(base))
    for name in base:
        if name in incoming:
            out[name] = _append_values(name, base[name], incoming[name], axis)
    for name in incoming:
        if name not in base:
            out[name] = deepcopy(incoming[name])
    return out


__all__ = ["resolve_index", "index_fields", "append_fields"]
