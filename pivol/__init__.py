"""
Package initializer for the pivol package.
"""

from .volume import (
    BaseVolume,
    MriVolume,
    MetaTable,
    UNSET,
    concat,
    preprocess,
)

__all__ = ["BaseVolume", "MriVolume", "MetaTable", "UNSET", "concat", "preprocess"]
