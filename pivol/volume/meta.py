"""
Metadata Tables
===============

Per-axis metadata for volume containers.

A `MetaTable` is an ordered mapping from field name to a numpy array that runs
along one axis of the data matrix (samples or features). Fields that are
declared but unused hold the `UNSET` placeholder instead of an array, so a
zero-length array always means "zero elements" and never "no value".

Every table carries the mandatory fields in `MANDATORY_FIELDS`; callers are
free to add their own. `describe_fields` derives a `Descriptor` (sorted unique
values, inverse index, count) for each field and checks that every set field
is in register with its axis.

Examples
--------
>>> import numpy as np
>>> from pivol.volume.meta import MetaTable, describe_fields
>>> table = MetaTable(chunks=[1, 1, 2, 2], labels=["A", "B", "A", "B"])
>>> desc = describe_fields(table, 4, axis="samples")
>>> desc["labels"].unique_values
array(['A', 'B'], dtype='<U1')
>>> table["order"]
array([1, 2, 3, 4])
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional

import numpy as np
import pandas as pd

from .exceptions import ShapeMismatch, TypeMismatch

logger = logging.getLogger(__name__)

# labels: categorical, chunks: numeric grouping id, names: categorical,
# order: numeric permutation
MANDATORY_FIELDS = ("labels", "chunks", "names", "order")


class _Unset:
    """Placeholder for a field that is declared but unused."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Unset, ())


UNSET = _Unset()


def as_field(values: Any, name: str = "") -> Any:
    """Normalise a field value to an owned numpy array or `UNSET`."""
    if values is None or values is UNSET:
        return UNSET
    if isinstance(values, Mapping):
        raise TypeMismatch(
            f"Field '{name}' must be array-like, got a nested {type(values).__name__}."
        )
    return np.atleast_1d(np.array(values))


def field_length(values: Any) -> int:
    return 0 if values is UNSET else values.shape[0]


def _freeze(values: Any) -> None:
    if values is not UNSET:
        values.flags.writeable = False


class MetaTable(MutableMapping):
    """
    Ordered collection of metadata fields for one axis.

    Parameters
    ----------
    fields : Mapping, optional
        Initial fields. Values are copied into numpy arrays; ``None`` and
        `UNSET` both declare a field without a value.
    **kwargs
        Additional fields, merged after `fields`.

    Notes
    -----
    Mandatory fields always exist and cannot be deleted. A table owned by a
    volume is bound to its axis length: assignments are validated before
    they are committed and the owner is notified so its descriptors never go
    stale.
    """

    def __init__(self, fields: Optional[Mapping] = None, **kwargs):
        self._fields: Dict[str, Any] = {name: UNSET for name in MANDATORY_FIELDS}
        self._length: Optional[int] = None
        self._axis = "axis"
        self._on_change: Optional[Callable[[], None]] = None
        for name, values in dict(fields or {}, **kwargs).items():
            self._fields[name] = as_field(values, name)

    # Mapping protocol
    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __setitem__(self, name: str, values: Any) -> None:
        values = as_field(values, name)
        if self._length is not None:
            check_length(name, values, self._length, self._axis)
            if name == "order" and values is UNSET:
                values = np.arange(1, self._length + 1)
            # unorderable values must fail before they are stored
            describe(values, name)
            _freeze(values)
        self._fields[name] = values
        self._notify()

    def __delitem__(self, name: str) -> None:
        if name in MANDATORY_FIELDS:
            raise KeyError(f"Cannot delete mandatory field '{name}'; assign UNSET instead.")
        del self._fields[name]
        self._notify()

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        if list(self.keys()) != list(other.keys()):
            return False
        for name, values in self.items():
            theirs = other[name]
            if values is UNSET or theirs is UNSET:
                if values is not theirs:
                    return False
            elif not np.array_equal(values, theirs):
                return False
        return True

    __hash__ = None

    def __repr__(self) -> str:
        parts = []
        for name, values in self._fields.items():
            if values is UNSET:
                parts.append(f"{name}=UNSET")
            else:
                parts.append(f"{name}=<{'x'.join(map(str, values.shape))} {values.dtype}>")
        return f"MetaTable({', '.join(parts)})"

    def is_set(self, name: str) -> bool:
        """True if `name` exists and holds a value."""
        return name in self._fields and self._fields[name] is not UNSET

    def copy(self) -> "MetaTable":
        """Return an unbound deep copy."""
        out = MetaTable()
        for name, values in self._fields.items():
            out._fields[name] = values if values is UNSET else values.copy()
        return out

    def fill_order(self, length: int) -> None:
        """Fill an unset `order` field with ``1..length`` (no notification)."""
        if self._fields["order"] is UNSET:
            self._fields["order"] = np.arange(1, length + 1)
            if self._length is not None:
                _freeze(self._fields["order"])

    def to_dataframe(self) -> pd.DataFrame:
        """
        Tabulate the set, one-dimensional fields.

        Returns
        -------
        pd.DataFrame
            One column per field, one row per axis element. `UNSET` and
            multi-column fields are omitted.
        """
        columns = {
            name: values
            for name, values in self._fields.items()
            if values is not UNSET and values.ndim == 1
        }
        return pd.DataFrame(columns)

    def _bind(self, length: int, axis: str, on_change: Optional[Callable[[], None]]) -> None:
        self._length = length
        self._axis = axis
        self._on_change = on_change
        for values in self._fields.values():
            _freeze(values)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


@dataclass(frozen=True)
class Descriptor:
    """Derived summary of one metadata field."""

    unique_values: np.ndarray
    inverse_index: np.ndarray
    count: int


EMPTY_DESCRIPTOR = Descriptor(np.array([]), np.array([], dtype=np.intp), 0)


def describe(values: Any, name: str = "") -> Descriptor:
    if values is UNSET:
        return EMPTY_DESCRIPTOR
    try:
        if values.ndim > 1:
            unique, inverse = np.unique(values, axis=0, return_inverse=True)
        else:
            unique, inverse = np.unique(values, return_inverse=True)
    except TypeError as e:
        raise TypeMismatch(f"Field '{name}' has unorderable values: {e}") from e
    return Descriptor(unique, inverse.reshape(-1), len(unique))


def check_length(name: str, values: Any, length: int, axis: str) -> None:
    if values is UNSET:
        return
    n = field_length(values)
    if n != length:
        raise ShapeMismatch(
            f"mismatch between n{axis} and meta.{axis} length: "
            f"field '{name}' has length {n}, expected {length}",
            field=name,
            length=n,
            expected=length,
        )


def describe_fields(table: MetaTable, length: int, axis: str = "samples") -> Dict[str, Descriptor]:
    """
    Validate a table against its axis length and describe every field.

    Parameters
    ----------
    table : MetaTable
        Table to describe. An unset `order` field is filled in place.
    length : int
        Number of elements along the axis.
    axis : str
        Axis name used in error messages ('samples' or 'features').

    Returns
    -------
    dict
        Field name -> `Descriptor`, in table order.

    Raises
    ------
    ShapeMismatch
        If a set field's length differs from `length`.
    """
    for name, values in table.items():
        check_length(name, values, length, axis)
    table.fill_order(length)
    return {name: describe(values, name) for name, values in table.items()}


__all__ = [
    "MANDATORY_FIELDS",
    "UNSET",
    "MetaTable",
    "Descriptor",
    "as_field",
    "describe",
    "describe_fields",
]
