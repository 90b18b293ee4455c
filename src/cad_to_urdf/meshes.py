"""Per-link mesh export and geometry attachment."""

import logging
from pathlib import Path

import jax.numpy as jnp

from cad_to_urdf.config import ConversionConfig
from cad_to_urdf.core.model import ExternalMesh, RobotModel
from cad_to_urdf.errors import ExportError
from cad_to_urdf.host import Component

logger = logging.getLogger(__name__)

STL_EXTENSION = ".stl"

# Binary STL headers must not start with the ASCII STL keyword.
ASCII_STL_KEYWORD = b"solid"
HEADER_REPLACEMENT = b"robot"


def mesh_file_stem(cad_name: str, config: ConversionConfig) -> str:
    """File name (without extension) of the mesh exported for a component."""
    stem = cad_name
    strip = config.mesh_name_strip
    if strip:
        stem = stem.replace(strip, "", 1)
    if config.force_lowercase:
        stem = stem.lower()
    return stem


def mesh_uri(stem: str, config: ConversionConfig) -> str:
    """Mesh reference written in the model, from the ``filenameformat`` template."""
    return config.filename_format.replace("%s", stem, 1) + STL_EXTENSION


def sanitize_stl(path: Path) -> bool:
    """Rewrite a leading ``solid`` in a binary STL header.

    Returns:
        True if the header was rewritten.
    """
    with open(path, "r+b") as f:
        if f.read(len(ASCII_STL_KEYWORD)) != ASCII_STL_KEYWORD:
            return False
        f.seek(0)
        f.write(HEADER_REPLACEMENT)
    return True


def export_link_mesh(
    component: Component,
    link_name: str,
    frame_name: str,
    config: ConversionConfig,
    model: RobotModel,
    output_dir: Path,
) -> ExternalMesh:
    """Export the mesh of a component and attach visual and collision geometry.

    The collision geometry is the configured primitive of the link if any,
    otherwise the mesh itself.

    Raises:
        ExportError: If the mesh file cannot be written or sanitized.
    """
    stem = mesh_file_stem(component.name, config)
    path = Path(output_dir) / (stem + STL_EXTENSION)
    try:
        component.export_mesh(path, frame_name)
        sanitize_stl(path)
    except OSError as e:
        raise ExportError(f"Unable to export the mesh of {component.name} to {path}: {e}")

    mesh = ExternalMesh(
        filename=mesh_uri(stem, config),
        scale=jnp.asarray(config.scale),
        color=jnp.asarray(config.assigned_color(link_name)),
    )
    model.add_visual_shape(link_name, mesh)
    model.add_collision_shape(link_name, config.assigned_collision_geometry.get(link_name, mesh))
    logger.debug(f"Exported mesh {path} for link {link_name}")
    return mesh
