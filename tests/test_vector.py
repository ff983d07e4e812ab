"""Tests for vector helpers."""

import math

import numpy as np
import pytest

from galaxy_engine.errors import InvalidConfiguration
from galaxy_engine.vector import (
    as_vector3,
    deg_to_rad,
    norm,
    rotate,
    rotation_matrix,
    tangential_directions,
)


def test_as_vector3_accepts_sequences():
    """Lists, tuples and arrays become (3,) float arrays."""
    vec = as_vector3([1, 2, 3])
    assert vec.dtype == np.float64
    assert vec.shape == (3,)
    assert np.array_equal(vec, [1.0, 2.0, 3.0])


@pytest.mark.parametrize("value", [[1.0, 2.0], [1.0, 2.0, 3.0, 4.0], [0.0, float("nan"), 0.0], [float("inf"), 0, 0], "abc"])
def test_as_vector3_rejects_malformed(value):
    """Wrong length or non-finite components are configuration errors."""
    with pytest.raises(InvalidConfiguration):
        as_vector3(value, "center")


def test_rotation_matrix_is_orthonormal():
    """Rotation matrices are orthonormal with determinant 1."""
    R = rotation_matrix([1.0, 2.0, 0.5], 0.7)
    assert np.allclose(R @ R.T, np.eye(3))
    assert math.isclose(np.linalg.det(R), 1.0, rel_tol=1e-12)


def test_rotation_about_z_axis():
    """A quarter turn about z maps x onto y."""
    R = rotation_matrix([0.0, 0.0, 1.0], math.pi / 2)
    assert np.allclose(rotate(np.array([1.0, 0.0, 0.0]), R), [0.0, 1.0, 0.0])


def test_rotation_about_x_tilts_disk():
    """Rotating about x by 30 degrees lifts +y points to positive z."""
    R = rotation_matrix([1.0, 0.0, 0.0], deg_to_rad(30.0))
    points = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0]])
    rotated = rotate(points, R)
    assert np.allclose(rotated[0], [0.0, math.cos(math.radians(30)), 0.5])
    assert np.allclose(rotated[1], [1.0, 0.0, 0.0])
    assert np.allclose(norm(rotated), norm(points))


def test_zero_axis_rejected():
    """A zero rotation axis is invalid."""
    with pytest.raises(InvalidConfiguration):
        rotation_matrix([0.0, 0.0, 0.0], 1.0)


def test_tangential_directions_are_perpendicular():
    """Tangential unit vectors are perpendicular to the radius, counter-clockwise."""
    angles = np.linspace(0.0, 2 * np.pi, 17)
    radial = np.column_stack([np.cos(angles), np.sin(angles), np.zeros_like(angles)])
    tangential = tangential_directions(angles)
    assert np.allclose(np.sum(radial * tangential, axis=1), 0.0)
    assert np.allclose(norm(tangential), 1.0)
    # z component of r x t is +1 for counter-clockwise motion
    assert np.allclose(np.cross(radial, tangential)[:, 2], 1.0)
