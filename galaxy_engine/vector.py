"""Small 3D vector helpers used by the generator and the physics code."""

import math
from typing import Any

import numpy as np

from galaxy_engine.errors import InvalidConfiguration


def as_vector3(value: Any, name: str = "vector") -> np.ndarray:
    """Coerce a 3-sequence into a finite float64 array of shape (3,).

    Args:
        value: Sequence or array with three numeric components
        name: Field name used in the error message

    Returns:
        New (3,) float64 array

    Raises:
        InvalidConfiguration: If the value is not three finite numbers
    """
    try:
        vec = np.array(value, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"{name} must be a sequence of 3 numbers, got {value!r}") from exc
    if vec.shape != (3,):
        raise InvalidConfiguration(f"{name} must have exactly 3 components, got {vec.size}")
    if not np.all(np.isfinite(vec)):
        raise InvalidConfiguration(f"{name} must be finite, got {vec.tolist()}")
    return vec


def deg_to_rad(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def norm(vectors: np.ndarray) -> np.ndarray:
    """Euclidean length of a vector, or of each row of an (n, 3) array."""
    return np.linalg.norm(vectors, axis=-1)


def rotation_matrix(axis: Any, angle: float) -> np.ndarray:
    """Rotation matrix for a right-handed rotation of `angle` radians about `axis`.

    Rodrigues' formula: R = I + sin(a) K + (1 - cos(a)) K^2, K the cross-product
    matrix of the unit axis.
    """
    k = as_vector3(axis, "axis")
    length = float(np.linalg.norm(k))
    if length == 0.0:
        raise InvalidConfiguration("Rotation axis must be non-zero")
    kx, ky, kz = k / length
    K = np.array([
        [0.0, -kz, ky],
        [kz, 0.0, -kx],
        [-ky, kx, 0.0],
    ])
    return np.eye(3) + math.sin(angle) * K + (1.0 - math.cos(angle)) * (K @ K)


def rotate(points: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Apply a rotation matrix to one vector (3,) or to every row of an (n, 3) array."""
    points = np.asarray(points, dtype=np.float64)
    # Row vectors: p' = p R^T
    return points @ matrix.T


def tangential_directions(angles: np.ndarray) -> np.ndarray:
    """Unit vectors perpendicular to the radius in the z=0 plane, counter-clockwise."""
    angles = np.asarray(angles, dtype=np.float64)
    return np.column_stack([-np.sin(angles), np.cos(angles), np.zeros_like(angles)])
