"""
pivol/volume/exceptions.py
--------------------------
Error taxonomy for volume containers and their metadata.
"""
from __future__ import annotations

from typing import Optional


class VolumeError(Exception):
    """Base error for all volume exceptions."""


class ShapeMismatch(VolumeError, ValueError):
    """Raised when a metadata field (or data block) is out of register with its axis."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        length: Optional[int] = None,
        expected: Optional[int] = None,
    ):
        super().__init__(message)
        self.field = field
        self.length = length
        self.expected = expected


class FieldNotFound(VolumeError, KeyError):
    """Raised when a query names a field that is set in neither metadata table."""

    def __init__(self, field: str):
        super().__init__(f"meta data does not exist: {field}")
        self.field = field

    def __str__(self) -> str:
        return self.args[0]


class TypeMismatch(VolumeError, TypeError):
    """Raised when a query value domain does not match the queried array."""


class UnsupportedOperation(VolumeError, NotImplementedError):
    """Raised for operations the container refuses by design (e.g. feature-axis concatenation)."""


__all__ = [
    "VolumeError",
    "ShapeMismatch",
    "FieldNotFound",
    "TypeMismatch",
    "UnsupportedOperation",
]
