from .config import PreprocessConfig, VolumeConfig, load_config
from .exceptions import (
    FieldNotFound,
    ShapeMismatch,
    TypeMismatch,
    UnsupportedOperation,
    VolumeError,
)
from .fields import append_fields, index_fields, resolve_index
from .meta import MANDATORY_FIELDS, UNSET, Descriptor, MetaTable, describe_fields
from .mri import MriVolume
from .query import find_by_meta, find_by_value
from .structures import BaseVolume, concat
from .transform import ChunkwiseTransformer, preprocess

__all__ = [
    "BaseVolume",
    "MriVolume",
    "MetaTable",
    "Descriptor",
    "UNSET",
    "MANDATORY_FIELDS",
    "describe_fields",
    "find_by_value",
    "find_by_meta",
    "index_fields",
    "append_fields",
    "resolve_index",
    "concat",
    "ChunkwiseTransformer",
    "preprocess",
    "PreprocessConfig",
    "VolumeConfig",
    "load_config",
    "VolumeError",
    "ShapeMismatch",
    "FieldNotFound",
    "TypeMismatch",
    "UnsupportedOperation",
]
