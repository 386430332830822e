"""
pivol/volume/mri.py
-------------------
Volumes whose features are the in-mask voxels of a 3D image.

`MriVolume` adds a boolean `mask` and an optional `header` to `BaseVolume`.
The voxel bookkeeping (``meta.features['linind']`` and
``meta.features['xyz']``) is always rebuilt from the mask, so indexing and
concatenation never paste stale coordinates together.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Dict, Optional, Sequence

import numpy as np

from .exceptions import ShapeMismatch
from .meta import MetaTable
from .structures import BaseVolume, stack_operands

logger = logging.getLogger(__name__)


class MriVolume(BaseVolume):
    """
    Samples by voxels data with a 3D mask.

    Parameters
    ----------
    data : array-like
        (nsamples, nvoxels) matrix; columns are the True voxels of `mask`
        in the order given by ``metafeatures['linind']`` (C order when
        omitted).
    mask : array-like of bool, optional
        3D mask. ``None`` gives a mask-less volume (e.g. ROI results).
    header : dict, optional
        Free-form image header (voxel size, affine, ...). Copied.
    metasamples, metafeatures : Mapping, optional
        See `BaseVolume`.

    Raises
    ------
    ShapeMismatch
        If the mask is not 3D, or its voxel count or linear indices do not
        match the data columns.

    Examples
    --------
    >>> mask = np.zeros((2, 2, 2), dtype=bool)
    >>> mask[0, 0, :] = True
    >>> vol = MriVolume(np.ones((3, 2)), mask=mask)
    >>> vol.meta.features['xyz']
    array([[0, 0, 0],
           [0, 0, 1]])
    """

    def __init__(
        self,
        data: Any,
        mask: Optional[Any] = None,
        header: Optional[Dict[str, Any]] = None,
        metasamples: Optional[Mapping] = None,
        metafeatures: Optional[Mapping] = None,
    ):
        data = np.array(data)
        metafeatures = MetaTable(metafeatures)
        if mask is not None:
            mask = np.array(mask, dtype=bool)
            if mask.ndim != 3:
                raise ShapeMismatch(f"mask must be 3D, got shape {mask.shape}", field="mask")
            nvox = int(mask.sum())
            if data.ndim == 2 and data.shape[1] != nvox:
                raise ShapeMismatch(
                    f"data has {data.shape[1]} features but mask has {nvox} voxels",
                    field="mask",
                    length=data.shape[1],
                    expected=nvox,
                )
            linind = metafeatures["linind"] if metafeatures.is_set("linind") else np.flatnonzero(mask)
            if not np.array_equal(np.sort(linind), np.flatnonzero(mask)):
                raise ShapeMismatch(
                    "meta.features.linind does not match the in-mask voxels", field="linind"
                )
            metafeatures["linind"] = linind
            metafeatures["xyz"] = np.column_stack(np.unravel_index(linind, mask.shape))
        self.mask = mask
        self.header = deepcopy(dict(header or {}))
        super().__init__(data, metasamples=metasamples, metafeatures=metafeatures)

    def __repr__(self) -> str:
        mask = "none" if self.mask is None else "x".join(map(str, self.mask.shape))
        return f"{super().__repr__()[:-1]}, mask={mask}>"

    def derive(self, data: np.ndarray, metasamples: MetaTable, metafeatures: MetaTable) -> "MriVolume":
        """
        Rebuild an MriVolume whose mask holds the surviving voxels.

        A masked volume holds each voxel at most once, so feature indices
        may reorder but not repeat columns.

        Raises
        ------
        ShapeMismatch
            If the indexed features repeat a voxel.
        """
        mask = None
        if self.mask is not None:
            linind = metafeatures["linind"]
            if np.unique(linind).size != linind.size:
                raise ShapeMismatch(
                    "MriVolume cannot hold repeated voxels; index each feature at most once",
                    field="linind",
                )
            # only the voxels that survived indexing stay in the mask
            mask = np.zeros(self.mask.shape, dtype=bool)
            mask.flat[metafeatures["linind"]] = True
        return type(self)(
            data,
            mask=mask,
            header=self.header,
            metasamples=metasamples,
            metafeatures=metafeatures,
        )

    @classmethod
    def from_operands(cls, volumes: Sequence[BaseVolume]) -> "MriVolume":
        """
        Stack MriVolumes along the sample axis.

        The mask and header are read from the first entry; every operand must
        share the same mask.

        Raises
        ------
        TypeError
            If an operand is not an MriVolume.
        ShapeMismatch
            If the masks (or feature counts) differ.
        """
        volumes = list(volumes)
        for vol in volumes:
            if not isinstance(vol, MriVolume):
                raise TypeError(f"Cannot stack {type(vol).__name__} with MriVolume.")
        first = volumes[0]
        for vol in volumes[1:]:
            same = (vol.mask is None and first.mask is None) or (
                vol.mask is not None
                and first.mask is not None
                and np.array_equal(vol.mask, first.mask)
            )
            if not same:
                raise ShapeMismatch("cannot stack MriVolumes with different masks", field="mask")
        data, metasamples, metafeatures = stack_operands(volumes)
        return cls(
            data,
            mask=first.mask,
            header=first.header,
            metasamples=metasamples,
            metafeatures=metafeatures,
        )

    def _require_mask(self) -> np.ndarray:
        if self.mask is None:
            raise ValueError("Operation requires a mask but this volume is mask-less.")
        return self.mask

    def linind_to_coord(self, linind: Any) -> np.ndarray:
        """Convert linear voxel indices to (n, 3) voxel coordinates."""
        mask = self._require_mask()
        return np.column_stack(np.unravel_index(np.asarray(linind), mask.shape))

    def coord_to_linind(self, xyz: Any) -> np.ndarray:
        """Convert (n, 3) voxel coordinates to linear voxel indices."""
        mask = self._require_mask()
        xyz = np.atleast_2d(np.asarray(xyz))
        return np.ravel_multi_index(tuple(xyz.T), mask.shape)

    def to_volume(self, sample: int = 0) -> np.ndarray:
        """
        Unmask one sample into a 3D array (NaN outside the mask).

        Parameters
        ----------
        sample : int, default=0
            Row of `data` to unmask.
        """
        mask = self._require_mask()
        out = np.full(mask.shape, np.nan)
        out.flat[self.meta.features["linind"]] = self.data[sample]
        return out


__all__ = ["MriVolume"]
