"""
pivol/volume/transform.py
-------------------------
Stateful transformers compatible with BaseVolume.

`ChunkwiseTransformer` follows the scikit-learn Transformer API but fits one
clone of the wrapped transformer per chunk and returns volumes, so sample
and feature metadata travel with the data. `preprocess` applies a
`PreprocessConfig` (label selection plus chunk-wise filtering) to a volume.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin, clone

from .config import PreprocessConfig
from .exceptions import ShapeMismatch
from .structures import BaseVolume

logger = logging.getLogger(__name__)


def _check_volume(volume: BaseVolume):
    """Helper to validate input."""
    if not isinstance(volume, BaseVolume):
        raise TypeError(f"Transformer expects BaseVolume, got {type(volume)}")


def _rebuild_volume(old: BaseVolume, new_data: np.ndarray) -> BaseVolume:
    """Helper to reconstruct a volume with new data and propagated metadata."""
    if new_data.shape[0] != old.nsamples:
        raise ShapeMismatch(
            f"transformer returned {new_data.shape[0]} samples, expected {old.nsamples}",
            length=new_data.shape[0],
            expected=old.nsamples,
        )
    if new_data.shape[1] == old.nfeatures:
        return old.derive(new_data, old.meta.samples, old.meta.features)
    # feature space changed (e.g. PCA); feature metadata no longer applies
    logger.info(
        f"Feature count changed {old.nfeatures} -> {new_data.shape[1]}; dropping feature metadata."
    )
    return BaseVolume(new_data, metasamples=old.meta.samples)


class ChunkwiseTransformer(BaseEstimator, TransformerMixin):
    """
    Apply a scikit-learn transformer separately to each chunk of a volume.

    Parameters
    ----------
    transformer : BaseEstimator
        An instantiated scikit-learn transformer (e.g. `StandardScaler()`).
    per_chunk : bool, default=True
        If False, a single clone is fitted on all samples.

    Attributes
    ----------
    estimators_ : dict
        Chunk value -> fitted estimator (key ``None`` when `per_chunk` is
        False or the volume has no chunks).

    Examples
    --------
    >>> from sklearn.preprocessing import StandardScaler
    >>> scaler = ChunkwiseTransformer(StandardScaler())
    >>> scaled = scaler.fit_transform(vol)
    >>> scaled.meta.samples == vol.meta.samples
    True
    """

    def __init__(self, transformer: BaseEstimator, per_chunk: bool = True):
        self.transformer = transformer
        self.per_chunk = per_chunk
        self.estimators_: Optional[Dict[Any, BaseEstimator]] = None

    def _groups(self, volume: BaseVolume):
        if not self.per_chunk:
            return [(None, np.ones(volume.nsamples, dtype=bool))]
        return list(volume.iter_chunks())

    def fit(self, volume: BaseVolume, y=None):
        _check_volume(volume)
        self.estimators_ = {}
        for chunk, chunkind in self._groups(volume):
            est = clone(self.transformer)
            est.fit(volume.data[chunkind], None if y is None else np.asarray(y)[chunkind])
            self.estimators_[chunk] = est
        logger.debug(f"Fitted {len(self.estimators_)} {type(self.transformer).__name__} instance(s)")
        return self

    def _apply(self, volume: BaseVolume, method: str) -> BaseVolume:
        _check_volume(volume)
        if self.estimators_ is None:
            raise RuntimeError("Transformer not fitted.")
        parts = []
        for chunk, chunkind in self._groups(volume):
            if chunk not in self.estimators_:
                raise ValueError(f"Chunk {chunk!r} was not seen during fit.")
            est = self.estimators_[chunk]
            if not hasattr(est, method):
                raise NotImplementedError(f"Wrapped estimator {type(est)} has no {method}.")
            parts.append((chunkind, getattr(est, method)(volume.data[chunkind])))

        widths = {out.shape[1] for _, out in parts}
        if len(widths) != 1:
            raise ShapeMismatch(f"Chunks produced different feature counts: {sorted(widths)}")
        new_data = np.empty((volume.nsamples, widths.pop()))
        for chunkind, out in parts:
            new_data[chunkind] = out
        return _rebuild_volume(volume, new_data)

    def transform(self, volume: BaseVolume) -> BaseVolume:
        return self._apply(volume, "transform")

    def fit_transform(self, volume: BaseVolume, y=None):
        return self.fit(volume, y).transform(volume)

    def inverse_transform(self, volume: BaseVolume) -> BaseVolume:
        return self._apply(volume, "inverse_transform")


def preprocess(volume: BaseVolume, config: Optional[PreprocessConfig] = None) -> BaseVolume:
    """
    Select labels and filter a volume according to `config`.

    The input volume is never modified: label selection always yields a new
    volume, and the chunk-wise filters run in place on that copy.

    Parameters
    ----------
    volume : BaseVolume
        Input volume. Label criteria match ``labels`` on whichever axis
        carries it.
    config : PreprocessConfig, optional
        Defaults to no selection and no filtering.

    Returns
    -------
    BaseVolume
        Preprocessed volume of the same class.
    """
    _check_volume(volume)
    config = config or PreprocessConfig()

    out = volume.get()
    if config.target_labels:
        out = out.select_by_meta(labels=config.target_labels)
    if config.ignore_labels:
        out = out.remove_by_meta(labels=config.ignore_labels)
    if config.detrend:
        out.sg_detrend(config.sgolay_k, config.sgolay_f)
    if config.median_filter is not None:
        out.median_filter(config.median_filter)
    if config.zscore:
        out.zscore()
    logger.info(f"Preprocessed {volume.shape} -> {out.shape}")
    return out


__all__ = ["ChunkwiseTransformer", "preprocess"]
