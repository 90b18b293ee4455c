"""
CAD to URDF: build robot descriptions from CAD assemblies.

Links, joints, inertias and frames are recovered from the components, axes
and coordinate systems of an assembly and serialized as URDF. Rigid
transforms are computed with JAX in double precision.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from . import core
from . import io
from .converter import ConversionResult, convert

__version__ = "0.1.0"
__all__ = ["transforms", "core", "io", "convert", "ConversionResult"]
