"""
Configuration Schemas for Volumes
=================================

Pydantic models for verifying volume preprocessing configurations.

Classes
-------
PreprocessConfig
    Label selection and chunk-wise filtering applied before analysis.
VolumeConfig
    Top-level configuration container.

Functions
---------
load_config
    Read a `VolumeConfig` from a YAML file.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class PreprocessConfig(BaseModel):
    """Configuration for `pivol.volume.transform.preprocess`."""

    target_labels: List[str] = Field(
        default_factory=list, description="Labels to keep (default all)."
    )
    ignore_labels: List[str] = Field(
        default_factory=list, description="Labels to remove (default none)."
    )
    sgolay_k: Optional[int] = Field(None, ge=0, description="Degree of the Savitzky-Golay detrend.")
    sgolay_f: Optional[int] = Field(None, ge=1, description="Frame size of the Savitzky-Golay detrend.")
    median_filter: Optional[int] = Field(None, ge=1, description="Median filter size (samples).")
    zscore: bool = Field(False, description="Z-score each chunk after filtering.")

    @field_validator("target_labels", "ignore_labels", mode="before")
    @classmethod
    def _listify(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("median_filter")
    @classmethod
    def _odd_filter(cls, v):
        if v is not None and v % 2 == 0:
            raise ValueError("median_filter size must be odd")
        return v

    @model_validator(mode="after")
    def _check_sgolay(self):
        if (self.sgolay_k is None) != (self.sgolay_f is None):
            raise ValueError("sgolay_k and sgolay_f must be given together")
        if self.sgolay_f is not None:
            if self.sgolay_f % 2 == 0:
                raise ValueError("sgolay_f must be odd")
            if self.sgolay_f <= self.sgolay_k:
                raise ValueError("sgolay_f must be larger than sgolay_k")
        return self

    @property
    def detrend(self) -> bool:
        return self.sgolay_k is not None


class VolumeConfig(BaseModel):
    """Master configuration container for volumes."""

    preprocess: PreprocessConfig = Field(default_factory=PreprocessConfig)


def load_config(path: Union[str, Path]) -> VolumeConfig:
    """
    Load a `VolumeConfig` from YAML.

    Parameters
    ----------
    path : str or Path
        YAML file. An empty file gives the defaults.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with open(p) as f:
        raw = yaml.safe_load(f) or {}
    logger.info(f"Loaded volume config from {p}")
    return VolumeConfig(**raw)


__all__ = ["PreprocessConfig", "VolumeConfig", "load_config"]
