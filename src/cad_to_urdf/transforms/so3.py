"""SO(3) rotation operations in JAX.

Rotations are 3x3 matrices. Roll-pitch-yaw triples follow the URDF
convention R = Rz(yaw) @ Ry(pitch) @ Rx(roll). All functions are pure and
operate on JAX arrays, with leading batch dimensions where noted.
"""

import jax
import jax.numpy as jnp

Array = jax.Array


def from_rpy(rpy: Array) -> Array:
    """
    Convert roll-pitch-yaw angles to a rotation matrix.

    Args:
        rpy: (..., 3) array of [roll, pitch, yaw] angles in radians

    Returns:
        (..., 3, 3) rotation matrix
    """
    rpy = jnp.asarray(rpy, dtype=jnp.float64)
    roll, pitch, yaw = rpy[..., 0], rpy[..., 1], rpy[..., 2]

    cr, sr = jnp.cos(roll), jnp.sin(roll)
    cp, sp = jnp.cos(pitch), jnp.sin(pitch)
    cy, sy = jnp.cos(yaw), jnp.sin(yaw)

    return jnp.stack([
        jnp.stack([cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr], axis=-1),
        jnp.stack([sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr], axis=-1),
        jnp.stack([-sp, cp * sr, cp * cr], axis=-1)
    ], axis=-2)


def to_rpy(R: Array) -> Array:
    """
    Convert a rotation matrix to roll-pitch-yaw angles.

    At the pitch = ±π/2 singularity roll is set to zero and the whole
    rotation about the vertical axis is reported as yaw.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 3) array of [roll, pitch, yaw] angles in radians
    """
    sin_pitch = jnp.clip(-R[..., 2, 0], -1.0, 1.0)
    pitch = jnp.arcsin(sin_pitch)

    # Gimbal lock
    locked = jnp.abs(sin_pitch) > 1.0 - 1e-9

    roll = jnp.where(locked, 0.0, jnp.arctan2(R[..., 2, 1], R[..., 2, 2]))
    yaw = jnp.where(
        locked,
        jnp.arctan2(-R[..., 0, 1], R[..., 1, 1]),
        jnp.arctan2(R[..., 1, 0], R[..., 0, 0]),
    )

    return jnp.stack([roll, pitch, yaw], axis=-1)


def multiply(R1: Array, R2: Array) -> Array:
    """
    Multiply two rotation matrices.

    Args:
        R1: (..., 3, 3) first rotation matrix
        R2: (..., 3, 3) second rotation matrix

    Returns:
        (..., 3, 3) result of R1 @ R2
    """
    return jnp.matmul(R1, R2)


def inverse(R: Array) -> Array:
    """
    Compute inverse of rotation matrix.

    For rotation matrices, the inverse is simply the transpose.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 3, 3) inverse rotation matrix
    """
    return jnp.swapaxes(R, -1, -2)


def apply(R: Array, v: Array) -> Array:
    """
    Apply rotation to vector(s).

    Args:
        R: (..., 3, 3) rotation matrix
        v: (..., 3) or (..., N, 3) vector(s) to rotate

    Returns:
        (..., 3) or (..., N, 3) rotated vector(s)
    """
    if v.ndim == R.ndim - 1:  # Single vector case
        return jnp.einsum('...ij,...j->...i', R, v)
    else:  # Multiple vectors case
        return jnp.einsum('...ij,...nj->...ni', R, v)


def is_rotation(R: Array, atol: float = 1e-6) -> bool:
    """Check that R is orthonormal with determinant +1."""
    R = jnp.asarray(R)
    orthonormal = jnp.allclose(jnp.matmul(R, inverse(R)), jnp.eye(3), atol=atol)
    return bool(orthonormal) and bool(jnp.abs(jnp.linalg.det(R) - 1.0) < atol)
