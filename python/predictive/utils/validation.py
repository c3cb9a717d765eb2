"""Input validation utilities."""

from typing import Any, Tuple

import numpy as np

from ..exceptions import DimensionError, InvalidInputError


def as_vector(value: Any, size: int, name: str) -> np.ndarray:
    """
    Convert ``value`` to a float vector of length ``size``.

    Column and row matrices are flattened; scalars are only accepted when
    ``size == 1``.

    Raises:
        DimensionError: if the number of elements does not match
    """
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim > 2 or (arr.ndim == 2 and 1 not in arr.shape and arr.size != 0):
        raise DimensionError(f"{name} must be a vector, got shape {arr.shape}")
    arr = arr.reshape(-1)
    if arr.size != size:
        raise DimensionError(f"{name} must have {size} elements, got {arr.size}")
    return arr.copy()


def as_matrix(value: Any, shape: Tuple[int, int], name: str) -> np.ndarray:
    """
    Convert ``value`` to a float matrix of exactly ``shape``.

    Empty inputs are accepted for shapes with a zero dimension.

    Raises:
        DimensionError: if the shape does not match
    """
    arr = np.asarray(value, dtype=np.float64)
    if arr.size == 0 and 0 in shape:
        return np.zeros(shape)
    if arr.ndim == 1 and 1 in shape:
        if arr.size != shape[0] * shape[1]:
            raise DimensionError(f"{name} must be {shape[0]}x{shape[1]}, got {arr.size} elements")
        arr = arr.reshape(shape)
    if arr.shape != tuple(shape):
        raise DimensionError(f"{name} must be {shape[0]}x{shape[1]}, got {arr.shape}")
    return arr.copy()


def check_finite(arr: np.ndarray, name: str) -> None:
    """Reject NaN entries (infinite bounds are allowed)."""
    if np.any(np.isnan(arr)):
        raise InvalidInputError(f"{name} contains NaN values")
