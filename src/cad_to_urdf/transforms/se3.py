"""SE(3) rigid body transforms in JAX.

Poses are 4x4 homogeneous matrices named after the frames they relate:
``a_H_b`` maps coordinates expressed in frame ``b`` into frame ``a``, so
``a_H_c = multiply(a_H_b, b_H_c)``. All functions are pure and operate on
JAX arrays.
"""

from typing import Sequence

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def identity() -> Array:
    """Return the 4x4 identity transform."""
    return jnp.eye(4, dtype=jnp.float64)


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Construct SE(3) transform from position and rotation.

    Args:
        p: (..., 3) position vector
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    p = jnp.asarray(p, dtype=jnp.float64)
    R = jnp.asarray(R, dtype=jnp.float64)

    # Ensure consistent batch shapes
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=p.dtype)
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)

    return T


def from_xyz_rpy(xyz: Sequence[float], rpy: Sequence[float]) -> Array:
    """
    Construct SE(3) transform from a position and roll-pitch-yaw angles.

    Args:
        xyz: (3,) position
        rpy: (3,) roll, pitch, yaw in radians

    Returns:
        (4, 4) homogeneous transformation matrix
    """
    return from_position_and_rotation(jnp.asarray(xyz, dtype=jnp.float64), so3.from_rpy(jnp.asarray(rpy)))


def to_xyz_rpy(T: Array) -> Array:
    """
    Split a transform into position and roll-pitch-yaw angles.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 6) array [x, y, z, roll, pitch, yaw]
    """
    return jnp.concatenate([get_position(T), so3.to_rpy(get_rotation(T))], axis=-1)


def multiply(T1: Array, T2: Array) -> Array:
    """
    Multiply two SE(3) transformation matrices.

    Args:
        T1: (..., 4, 4) first transformation matrix
        T2: (..., 4, 4) second transformation matrix

    Returns:
        (..., 4, 4) result of T1 @ T2
    """
    return jnp.matmul(T1, T2)


def inverse(T: Array) -> Array:
    """
    Compute inverse of SE(3) transformation matrix.

    Uses the block structure for efficient computation:
    T^-1 = [[R^T, -R^T @ t], [0, 1]]

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 4, 4) inverse transformation matrix
    """
    R = T[..., :3, :3]
    t = T[..., :3, 3]

    R_inv = jnp.swapaxes(R, -1, -2)
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, t)

    return from_position_and_rotation(t_inv, R_inv)


def apply(T: Array, points: Array) -> Array:
    """
    Apply SE(3) transformation to points.

    Args:
        T: (..., 4, 4) transformation matrix
        points: (..., 3) or (..., N, 3) points to transform

    Returns:
        (..., 3) or (..., N, 3) transformed points
    """
    points = jnp.asarray(points, dtype=T.dtype)
    ones = jnp.ones_like(points[..., 0:1])
    points_h = jnp.concatenate([points, ones], axis=-1)

    if points.ndim == T.ndim - 1:
        transformed_h = jnp.einsum("...ij,...j->...i", T, points_h)
    else:
        transformed_h = jnp.einsum("...ij,...nj->...ni", T, points_h)

    return transformed_h[..., :3]


def scale_translation(T: Array, scale: Sequence[float]) -> Array:
    """
    Scale the translation part of a transform per axis.

    CAD hosts report translations in their own length unit; ``scale`` maps
    each component into the model unit. The rotation block is untouched.

    Args:
        T: (..., 4, 4) transformation matrix
        scale: (3,) per-axis factors

    Returns:
        (..., 4, 4) transformation matrix with scaled translation
    """
    scale = jnp.asarray(scale, dtype=T.dtype)
    return T.at[..., :3, 3].multiply(scale)


def get_position(T: Array) -> Array:
    """
    Extract position from SE(3) transformation matrix.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 3) position vector
    """
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    """
    Extract rotation matrix from SE(3) transformation matrix.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 3, 3) rotation matrix
    """
    return T[..., :3, :3]
