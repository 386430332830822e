"""
Volume Containers
=================

Two-dimensional data containers whose metadata stays in register with the
data as it is indexed, selected and concatenated.

This module provides `BaseVolume`, an (nsamples, nfeatures) data matrix with
one `MetaTable` per axis. Every derived volume (indexing, selection, removal,
concatenation) is built through the concrete class's own factory hooks so
subclasses can rebuild their own derived state.

Examples
--------
>>> import numpy as np
>>> from pivol.volume import BaseVolume

# 1. Four samples in two chunks, three features
>>> vol = BaseVolume(
...     np.arange(12.0).reshape(4, 3),
...     metasamples={'chunks': [1, 1, 2, 2], 'labels': ['A', 'B', 'A', 'B']},
...     metafeatures={'names': ['v1', 'v2', 'v3']},
... )
>>> vol.select_by_meta(chunks=1).shape
(2, 3)

# 2. Everything except condition A, all runs
>>> vol.remove_by_meta(labels='A').meta.samples['labels']
array(['B', 'B'], dtype='<U1')

# 3. Stack runs along the sample axis
>>> vol.concat_samples(vol).shape
(8, 3)
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.signal import medfilt, savgol_filter
from scipy.stats import zscore as _zscore

from .exceptions import ShapeMismatch, TypeMismatch, UnsupportedOperation
from .fields import IndexLike, append_fields, index_fields, resolve_index
from .meta import UNSET, MetaTable, describe_fields
from .query import find_by_meta

logger = logging.getLogger(__name__)

AXES = ("samples", "features")


@dataclass(frozen=True)
class AxisPair:
    """One value per axis (metadata tables or descriptors). Read-only."""

    samples: Any
    features: Any

    def __getitem__(self, axis: str) -> Any:
        if axis not in AXES:
            raise KeyError(f"Unknown axis '{axis}'. Choose from {AXES}.")
        return getattr(self, axis)


class BaseVolume:
    """
    Base container for nsamples by nfeatures data with per-axis metadata.

    Parameters
    ----------
    data : array-like
        Two-dimensional numeric matrix (samples x features). Copied.
    metasamples : MetaTable or Mapping, optional
        Fields running along the sample axis (e.g. labels, chunks). Copied.
    metafeatures : MetaTable or Mapping, optional
        Fields running along the feature axis (e.g. names). Copied.

    Attributes
    ----------
    data : np.ndarray
        The data matrix.
    meta : AxisPair
        ``meta.samples`` and ``meta.features`` metadata tables.
    desc : AxisPair
        ``desc.samples`` and ``desc.features``: field name -> `Descriptor`,
        rebuilt whenever a table changes.

    Raises
    ------
    ShapeMismatch
        If `data` is not two-dimensional or a metadata field is out of
        register with its axis.
    TypeMismatch
        If `data` is not numeric.

    Notes
    -----
    Subclasses that carry extra state override `derive` (used by indexing)
    and `from_operands` (used by concatenation).
    """

    def __init__(
        self,
        data: Any,
        metasamples: Optional[Mapping] = None,
        metafeatures: Optional[Mapping] = None,
    ):
        data = np.array(data)
        if data.ndim != 2:
            raise ShapeMismatch(
                f"input data must be nsamples by nfeatures matrix, got shape {data.shape}"
            )
        if data.dtype.kind not in ("b", "i", "u", "f", "c"):
            raise TypeMismatch(f"input data must be numeric, got dtype {data.dtype}")
        self.data = data
        self._meta = AxisPair(
            samples=MetaTable(metasamples), features=MetaTable(metafeatures)
        )
        self._desc = AxisPair(samples={}, features={})
        self.check_meta()
        self._meta.samples._bind(self.nsamples, "samples", self.check_meta)
        self._meta.features._bind(self.nfeatures, "features", self.check_meta)

    @property
    def meta(self) -> AxisPair:
        """``meta.samples`` and ``meta.features``; edit fields, not tables."""
        return self._meta

    @property
    def desc(self) -> AxisPair:
        return self._desc

    @property
    def nsamples(self) -> int:
        return self.data.shape[0]

    @property
    def nfeatures(self) -> int:
        return self.data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} [samples={self.nsamples} x features={self.nfeatures}], "
            f"metasamples={list(self.meta.samples)}, metafeatures={list(self.meta.features)}>"
        )

    def check_meta(self) -> None:
        """
        Check that metadata is in register with the data and rebuild descriptors.

        Raises
        ------
        ShapeMismatch
            If a set field's length differs from its axis length.
        """
        samples = describe_fields(self.meta.samples, self.nsamples, "samples")
        features = describe_fields(self.meta.features, self.nfeatures, "features")
        self._desc = AxisPair(samples=samples, features=features)

    # ------------------------------------------------------------------
    # Field registry
    # ------------------------------------------------------------------
    def get_field(self, name: str, axis: str = "samples") -> Any:
        """Return field `name` of the `axis` table (an array or `UNSET`)."""
        return self.meta[axis][name]

    def set_field(self, name: str, values: Any, axis: str = "samples") -> None:
        """
        Set field `name` on the `axis` table.

        The new values are validated against the axis length before they are
        stored; descriptors are rebuilt afterwards.
        """
        self.meta[axis][name] = values

    # ------------------------------------------------------------------
    # Factory hooks
    # ------------------------------------------------------------------
    def derive(self, data: np.ndarray, metasamples: MetaTable, metafeatures: MetaTable) -> "BaseVolume":
        """
        Build a volume of the same class from indexed data and metadata.

        Subclasses with extra constructor arguments must override this.
        """
        return type(self)(data, metasamples=metasamples, metafeatures=metafeatures)

    @classmethod
    def from_operands(cls, volumes: Sequence["BaseVolume"]) -> "BaseVolume":
        """
        Build one volume by stacking `volumes` along the sample axis.

        Sample metadata is merged with `append_fields`; the feature table is
        taken from the first operand.

        Raises
        ------
        ShapeMismatch
            If the operands disagree on nfeatures.
        """
        data, metasamples, metafeatures = stack_operands(volumes)
        return cls(data, metasamples=metasamples, metafeatures=metafeatures)

    # ------------------------------------------------------------------
    # Indexing and selection
    # ------------------------------------------------------------------
    def get(self, rows: IndexLike = None, cols: IndexLike = None) -> "BaseVolume":
        """
        Index the volume by sample (rows) and feature (cols) positions.

        Parameters
        ----------
        rows : index-like, optional
            Boolean mask, integer positions, slice, int, or ':'/'all'/None
            for every sample.
        cols : index-like, optional
            Same for features. Omitted means every feature.

        Returns
        -------
        BaseVolume
            A new volume of the same class, with independent storage.

        Examples
        --------
        >>> vol.get([0, 2]).shape
        (2, 3)
        >>> vol.get(':', [True, False, True]).meta.features['names']
        array(['v1', 'v3'], dtype='<U2')
        """
        sampind = resolve_index(rows, self.nsamples)
        featind = resolve_index(cols, self.nfeatures)
        data = self.data[sampind][:, featind]
        metasamples = index_fields(self.meta.samples, sampind, self.nsamples)
        metafeatures = index_fields(self.meta.features, featind, self.nfeatures)
        logger.debug(f"Indexed {self.shape} -> {data.shape}")
        return self.derive(data, metasamples, metafeatures)

    def find_by_meta(self, **criteria) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return boolean sample and feature masks matching `criteria`.

        Each keyword names a metadata field; its value is one or more values
        to match (OR). Criteria are combined with AND per axis.

        Raises
        ------
        FieldNotFound
            If a field is set in neither metadata table.
        """
        return find_by_meta(
            self.meta.samples,
            self.meta.features,
            self.nsamples,
            self.nfeatures,
            **criteria,
        )

    def select_by_meta(self, **criteria) -> "BaseVolume":
        """
        Return a volume with the samples and features matching `criteria`.

        Examples
        --------
        >>> vol.select_by_meta(chunks=[1, 2], labels='A').meta.samples['chunks']
        array([1, 2])
        """
        sampind, featind = self.find_by_meta(**criteria)
        return self.get(sampind, featind)

    def remove_by_meta(self, **criteria) -> "BaseVolume":
        """
        Return a volume WITHOUT the samples and features matching `criteria`.

        An axis that no criterion constrained (all-true mask) is kept whole.
        """
        sampind, featind = self.find_by_meta(**criteria)
        if not sampind.all():
            sampind = ~sampind
        if not featind.all():
            featind = ~featind
        return self.get(sampind, featind)

    # ------------------------------------------------------------------
    # Concatenation
    # ------------------------------------------------------------------
    def concat_samples(self, *others: "BaseVolume") -> "BaseVolume":
        """Stack this volume and `others` along the sample axis."""
        return type(self).from_operands([self, *others])

    def concat_features(self, *others: "BaseVolume") -> "BaseVolume":
        raise UnsupportedOperation("concatenation in feature dimension is not supported")

    # ------------------------------------------------------------------
    # In-place chunk-wise operations
    # ------------------------------------------------------------------
    def _float_data(self) -> None:
        if self.data.dtype.kind != "f":
            self.data = self.data.astype(float)

    def iter_chunks(self) -> Iterator[Tuple[Any, np.ndarray]]:
        """Yield ``(chunk value, boolean sample mask)`` for each unique chunk."""
        chunks = self.meta.samples["chunks"]
        if chunks is UNSET:
            logger.warning("meta.samples.chunks is unset; treating all samples as one chunk.")
            yield None, np.ones(self.nsamples, dtype=bool)
            return
        desc = self.desc.samples["chunks"]
        for c in range(desc.count):
            yield desc.unique_values[c], desc.inverse_index == c

    def median_filter(self, n: int) -> "BaseVolume":
        """
        Median filter the data in place along the sample axis, per chunk.

        Parameters
        ----------
        n : int
            Odd filter size (samples).
        """
        self._float_data()
        for _, chunkind in self.iter_chunks():
            self.data[chunkind, :] = medfilt(self.data[chunkind, :], kernel_size=[n, 1])
        return self

    def sg_detrend(self, k: int, f: int) -> "BaseVolume":
        """
        Remove a Savitzky-Golay fit (order `k`, frame size `f`) from each chunk in place.
        """
        self._float_data()
        for _, chunkind in self.iter_chunks():
            chunk = self.data[chunkind, :]
            self.data[chunkind, :] = chunk - savgol_filter(
                chunk, window_length=f, polyorder=k, axis=0
            )
        return self

    def zscore(self) -> "BaseVolume":
        """
        Standardise each feature in place, separately for each chunk.

        Uses the sample standard deviation (ddof=1). Features that are
        constant within a chunk (including single-sample chunks) become 0.
        """
        self._float_data()
        for _, chunkind in self.iter_chunks():
            chunk = self.data[chunkind, :]
            out = np.zeros_like(chunk)
            varying = np.ptp(chunk, axis=0) != 0
            if varying.any():
                out[:, varying] = _zscore(chunk[:, varying], axis=0, ddof=1)
            self.data[chunkind, :] = out
        return self

    # ------------------------------------------------------------------
    # pandas bridge
    # ------------------------------------------------------------------
    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        meta_columns: Optional[List[str]] = None,
        **kwargs,
    ) -> "BaseVolume":
        """
        Build a volume from a tabular frame (rows are samples).

        Parameters
        ----------
        df : pd.DataFrame
            Input table.
        meta_columns : list of str, optional
            Columns to move into ``meta.samples`` instead of the data. The
            remaining column names become ``meta.features['names']``.
        **kwargs
            Passed to the constructor (e.g. `metafeatures` extras).
        """
        meta_columns = meta_columns or []
        missing = [c for c in meta_columns if c not in df.columns]
        if missing:
            raise ValueError(f"Meta columns not found in frame: {missing}")
        features = df.drop(columns=meta_columns)
        metasamples = {c: df[c].to_numpy() for c in meta_columns}
        metafeatures = dict(kwargs.pop("metafeatures", None) or {})
        metafeatures.setdefault("names", np.array(features.columns.astype(str)))
        return cls(
            features.to_numpy(dtype=float),
            metasamples=metasamples,
            metafeatures=metafeatures,
            **kwargs,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Data as a frame with one-dimensional sample fields appended as columns."""
        names = self.meta.features["names"]
        columns = names.astype(str) if names is not UNSET else None
        df = pd.DataFrame(self.data, columns=columns)
        meta = self.meta.samples.to_dataframe()
        return pd.concat([df, meta.add_prefix("meta_")], axis=1)


def stack_operands(volumes: Sequence[BaseVolume]) -> Tuple[np.ndarray, MetaTable, MetaTable]:
    """
    Stack the data and merge the metadata of `volumes` along the sample axis.

    Returns
    -------
    tuple
        ``(data, metasamples, metafeatures)`` ready for a constructor.
    """
    volumes = list(volumes)
    if not volumes:
        raise ValueError("Need at least one volume to concatenate.")
    first = volumes[0]
    for vol in volumes[1:]:
        if vol.nfeatures != first.nfeatures:
            raise ShapeMismatch(
                f"cannot stack volumes with {vol.nfeatures} and {first.nfeatures} features",
                length=vol.nfeatures,
                expected=first.nfeatures,
            )
        if vol.meta.features != first.meta.features:
            logger.warning(
                "Feature metadata differs between stacked volumes; keeping the first."
            )

    metasamples = first.meta.samples
    for vol in volumes[1:]:
        metasamples = append_fields(metasamples, vol.meta.samples, axis=0)
    data = np.vstack([vol.data for vol in volumes])
    logger.debug(f"Stacked {len(volumes)} volumes -> {data.shape}")
    return data, metasamples, first.meta.features


def concat(volumes: Sequence[BaseVolume], axis: int = 0) -> BaseVolume:
    """
    Concatenate volumes. Only the sample axis (0) is supported.

    Raises
    ------
    UnsupportedOperation
        For any other axis.
    """
    if axis != 0:
        raise UnsupportedOperation("concatenation is only supported in data dim")
    volumes = list(volumes)
    return volumes[0].concat_samples(*volumes[1:])


__all__ = ["AxisPair", "BaseVolume", "stack_operands", "concat"]
