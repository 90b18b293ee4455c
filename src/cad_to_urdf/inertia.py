"""Rigid-body inertia of a link from CAD mass properties.

The host reports mass, center of gravity and the inertia tensor about the
center of gravity in its own units. This module scales them into model
units, applies configured overrides and re-expresses the center of mass in
the link frame.
"""

import logging

import jax.numpy as jnp
from jax import Array

from cad_to_urdf.config import ConversionConfig
from cad_to_urdf.core.model import SpatialInertia
from cad_to_urdf.host import MassProperty
from cad_to_urdf.transforms import se3

logger = logging.getLogger(__name__)


def build_inertia(
    mass_property: MassProperty,
    root_H_link: Array,
    link_name: str,
    config: ConversionConfig,
) -> SpatialInertia:
    """Compute the spatial inertia of a link.

    Tensor entry (i, j) is scaled by ``scale[i] * scale[j]``. A configured
    inertia override is diagonal-only: it replaces the diagonal and the
    off-diagonal entries are zero. The center of gravity is scaled per axis
    first, then mapped into the link frame with ``root_H_link^-1``.

    Args:
        mass_property: Mass data reported by the host.
        root_H_link: (4, 4) pose of the link frame in the root frame.
        link_name: Canonical link name, used to look up overrides.
        config: Conversion configuration.

    Returns:
        SpatialInertia in the link frame.
    """
    scale = jnp.asarray(config.scale, dtype=jnp.float64)

    if link_name in config.assigned_inertias:
        rotational_inertia = jnp.diag(jnp.asarray(config.assigned_inertias[link_name], dtype=jnp.float64))
    else:
        tensor = jnp.asarray(mass_property.inertia_tensor, dtype=jnp.float64)
        rotational_inertia = tensor * jnp.outer(scale, scale)

    com_root = jnp.asarray(mass_property.center_of_gravity, dtype=jnp.float64) * scale
    com_link = se3.apply(se3.inverse(root_H_link), com_root)

    mass = config.assigned_mass(link_name)
    if mass is None:
        mass = float(mass_property.mass)

    return SpatialInertia(mass=mass, com=com_link, rotational_inertia=rotational_inertia)


def is_physically_consistent(inertia: SpatialInertia, tol: float = 1e-9) -> bool:
    """Check that an inertia can belong to a real rigid body.

    The mass must be non-negative, the tensor symmetric, and its principal
    moments non-negative and satisfying the triangle inequality.
    """
    if float(inertia.mass) < 0.0:
        return False

    I = jnp.asarray(inertia.rotational_inertia)
    if not bool(jnp.allclose(I, I.T, atol=tol)):
        return False

    moments = jnp.linalg.eigvalsh(I)
    if bool(jnp.any(moments < -tol)):
        return False

    a, b, c = (float(m) for m in moments)
    return a + b >= c - tol and b + c >= a - tol and a + c >= b - tol
