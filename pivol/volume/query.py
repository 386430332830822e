"""
pivol/volume/query.py
---------------------
Turn named metadata criteria into boolean masks.

`find_by_value` matches one field against one or more query values (OR);
`find_by_meta` combines criteria across fields (AND) independently for the
samples and features axes.
"""
from __future__ import annotations

import logging
import numbers
from typing import Any, Tuple

import numpy as np

from .exceptions import FieldNotFound, TypeMismatch
from .meta import UNSET, MetaTable

logger = logging.getLogger(__name__)

CATEGORICAL = "categorical"
NUMERIC = "numeric"


def array_domain(array: np.ndarray) -> str:
    """Classify a metadata array as categorical or numeric."""
    kind = array.dtype.kind
    if kind in ("U", "S"):
        return CATEGORICAL
    if kind in ("b", "i", "u", "f", "c"):
        return NUMERIC
    if kind == "O":
        if all(isinstance(x, str) for x in array.ravel()):
            return CATEGORICAL
        if all(_is_number(x) for x in array.ravel()):
            return NUMERIC
    raise TypeMismatch(f"unrecognised array class: {array.dtype}")


def _is_number(x: Any) -> bool:
    return isinstance(x, (numbers.Number, np.number, np.bool_))


def query_domain(query: Any) -> Tuple[str, list]:
    """Return the domain of a query and its values as a flat list."""
    if isinstance(query, (str, bytes)) or np.ndim(query) == 0:
        values = [query]
    else:
        values = list(np.asarray(query, dtype=object).ravel())
    if not values:
        return "", values
    if all(isinstance(v, str) for v in values):
        return CATEGORICAL, values
    if all(_is_number(v) for v in values):
        return NUMERIC, values
    raise TypeMismatch(
        f"unrecognised input class: query values must be all strings or all numbers, got {query!r}"
    )


def find_by_value(array: Any, query: Any) -> np.ndarray:
    """
    Return a mask of the elements of `array` equal to any value in `query`.

    Parameters
    ----------
    array : array-like
        Categorical (strings) or numeric metadata field.
    query : scalar or sequence
        One or more values in a single domain. Multiple values are OR-ed.

    Returns
    -------
    np.ndarray
        Boolean mask with one entry per element of `array`.

    Raises
    ------
    TypeMismatch
        If the query mixes domains or its domain differs from `array`'s.

    Examples
    --------
    >>> find_by_value([1, 2, 3, 2], [2, 3])
    array([False,  True,  True,  True])
    >>> find_by_value(['A', 'B', 'A'], 'A')
    array([ True, False,  True])
    """
    array = np.asarray(array)
    if array.ndim != 1:
        raise TypeMismatch(f"can only match one-dimensional fields, got shape {array.shape}")
    domain, values = query_domain(query)
    if not values:
        return np.zeros(array.shape[0], dtype=bool)

    target = array_domain(array)
    if target != domain:
        raise TypeMismatch(f"array must be {domain} to match {query!r}, got {target} array")

    if domain == CATEGORICAL:
        return np.isin(array.astype(str), np.array(values, dtype=str))
    return np.isin(array, np.array(values))


def find_by_meta(
    samples: MetaTable,
    features: MetaTable,
    nsamples: int,
    nfeatures: int,
    **criteria,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Resolve named criteria into sample and feature masks.

    Each criterion is matched against whichever table holds the field (both
    if both do). Criteria are AND-ed per axis; an axis no criterion touches
    stays all-true.

    Raises
    ------
    FieldNotFound
        If a criterion names a field that is set in neither table.
    """
    sample_mask = np.ones(nsamples, dtype=bool)
    feature_mask = np.ones(nfeatures, dtype=bool)

    for name, value in criteria.items():
        insamp = samples.get(name, UNSET) is not UNSET
        infeat = features.get(name, UNSET) is not UNSET
        # asking for meta data we can't find is almost certainly a typo
        if not (insamp or infeat):
            raise FieldNotFound(name)
        if insamp:
            sample_mask &= find_by_value(samples[name], value)
        if infeat:
            feature_mask &= find_by_value(features[name], value)

    logger.debug(
        f"find_by_meta({', '.join(criteria)}): "
        f"{int(sample_mask.sum())}/{nsamples} samples, "
        f"{int(feature_mask.sum())}/{nfeatures} features"
    )
    return sample_mask, feature_mask


__all__ = ["find_by_value", "find_by_meta", "array_domain", "query_domain"]
