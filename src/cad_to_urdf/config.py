"""Typed access to the conversion configuration document.

The configuration is a YAML mapping. Every optional key falls back to a
default when absent; only the robot name and the base link are required,
and only at export time.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import jax.numpy as jnp
import yaml

from cad_to_urdf.core.model import Box, Cylinder, Shape, Sphere
from cad_to_urdf.errors import ConfigurationError
from cad_to_urdf.transforms import se3

logger = logging.getLogger(__name__)

# Rename-table key whose value names the base link when ``root`` is absent.
ROOT_LINK_RENAME_KEY = "SIM_ECUB_1-1_ROOT_LINK"

DEFAULT_COLOR = (0.5, 0.5, 0.5, 1.0)


@dataclass
class ExportedFrameEntry:
    """An ``exportedFrames`` item: a CAD coordinate system exported as a frame."""

    frame_name: str
    reference_link: str
    exported_name: str
    additional_transform: Any = None  # (4, 4) array or None


def load_config(path: Union[str, Path]) -> "ConversionConfig":
    """Load a YAML configuration file.

    Args:
        path: Path to the configuration document.

    Returns:
        ConversionConfig wrapping the parsed document.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a
            YAML mapping.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file {path} does not exist!")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Configuration file {path} is malformed: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping at top level")

    logger.info(f"Configuration file {path} was loaded successfully")
    return ConversionConfig(data)


class ConversionConfig:
    """Typed accessors over a parsed configuration mapping."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})
        self.assigned_inertias = self._read_assigned_inertias()
        self.assigned_collision_geometry = self._read_assigned_collision_geometry()
        self.exported_frames = self._read_exported_frames()

    # Names
    def rename(self, name: str) -> str:
        """Canonical name for ``name``; identity (with a warning) when unmapped."""
        renames = self.data.get("rename") or {}
        if name in renames:
            return str(renames[name])
        logger.warning(f"Element {name} is not present in the configuration file!")
        return name

    def link_frame(self, link_name: str) -> str:
        """CAD reference frame anchoring ``link_name``, or '' for the default frame."""
        frame_name = ""
        for entry in self.data.get("linkFrames") or []:
            if entry.get("linkName") == link_name:
                frame_name = str(entry.get("frameName", ""))
        return frame_name

    # Scalars and vectors
    @property
    def scale(self) -> Tuple[float, float, float]:
        return self._vector("scale", 3, (1.0, 1.0, 1.0))

    @property
    def origin_xyz(self) -> Tuple[float, float, float]:
        return self._vector("originXYZ", 3, (0.0, 0.0, 0.0))

    @property
    def origin_rpy(self) -> Tuple[float, float, float]:
        return self._vector("originRPY", 3, (0.0, 0.0, 0.0))

    @property
    def export_all_useradded(self) -> bool:
        return bool(self.data.get("exportAllUseradded", False))

    @property
    def xml_blobs(self) -> Optional[List[str]]:
        """Configured raw markup fragments, or None when ``XMLBlobs`` is absent."""
        blobs = self.data.get("XMLBlobs")
        if blobs is None:
            return None
        return [str(blob) for blob in blobs]

    # Per-link overrides
    def assigned_mass(self, link_name: str) -> Optional[float]:
        masses = self.data.get("assignedMasses") or {}
        if link_name in masses:
            return float(masses[link_name])
        return None

    def assigned_color(self, link_name: str) -> Tuple[float, ...]:
        colors = self.data.get("assignedColors") or {}
        if link_name in colors:
            return tuple(float(c) for c in colors[link_name])
        return DEFAULT_COLOR

    def is_rotation_axis_reversed(self, joint_name: str) -> bool:
        """Whether the rotation axis of ``joint_name`` must be flipped.

        ``reverseRotationAxis`` is either a list of joint names or a single
        string in which joint names are searched as substrings.
        """
        reversed_axes = self.data.get("reverseRotationAxis")
        if reversed_axes is None:
            return False
        if isinstance(reversed_axes, (list, tuple, set)):
            return joint_name in {str(name) for name in reversed_axes}
        return joint_name in str(reversed_axes)

    # Mesh naming
    @property
    def mesh_name_strip(self) -> Optional[str]:
        value = self.data.get("stringToRemoveFromMeshFileName")
        return str(value) if value is not None else None

    @property
    def force_lowercase(self) -> bool:
        return bool(self.data.get("forcelowercase", False))

    @property
    def filename_format(self) -> str:
        return str(self.data.get("filenameformat", "%s"))

    # Export options
    def robot_name(self) -> str:
        if "robotName" not in self.data:
            raise ConfigurationError("Missing required key 'robotName'")
        return str(self.data["robotName"])

    def base_link(self) -> str:
        if "root" in self.data:
            return str(self.data["root"])
        renames = self.data.get("rename") or {}
        if ROOT_LINK_RENAME_KEY in renames:
            return str(renames[ROOT_LINK_RENAME_KEY])
        raise ConfigurationError(f"Missing required key 'root' (or rename entry '{ROOT_LINK_RENAME_KEY}')")

    # Readers
    def _vector(self, key: str, size: int, default: Tuple[float, ...]) -> Tuple[float, ...]:
        value = self.data.get(key)
        if value is None:
            return default
        try:
            vector = tuple(float(v) for v in value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"'{key}' must be a list of {size} numbers, got {value!r}")
        if len(vector) != size:
            raise ConfigurationError(f"'{key}' must be a list of {size} numbers, got {value!r}")
        return vector

    def _read_assigned_inertias(self) -> Dict[str, Tuple[float, float, float]]:
        inertias = {}
        for entry in self.data.get("assignedInertias") or []:
            try:
                inertias[str(entry["linkName"])] = (float(entry["xx"]), float(entry["yy"]), float(entry["zz"]))
            except (KeyError, TypeError, ValueError):
                raise ConfigurationError(f"Malformed assignedInertias entry: {entry!r}")
        return inertias

    def _read_assigned_collision_geometry(self) -> Dict[str, Shape]:
        geometries = {}
        for entry in self.data.get("assignedCollisionGeometry") or []:
            try:
                link_name = str(entry["linkName"])
                geometries[link_name] = _shape_from_config(entry["geometricShape"])
            except (KeyError, TypeError, ValueError):
                raise ConfigurationError(f"Malformed assignedCollisionGeometry entry: {entry!r}")
        return geometries

    def _read_exported_frames(self) -> Dict[str, ExportedFrameEntry]:
        frames = {}
        for entry in self.data.get("exportedFrames") or []:
            try:
                frame_name = str(entry["frameName"])
                additional = entry.get("additionalTransformation")
                if additional is not None:
                    if len(additional) != 6:
                        raise ValueError("additionalTransformation needs 6 values")
                    additional = se3.from_xyz_rpy(additional[:3], additional[3:])
                frames[frame_name] = ExportedFrameEntry(
                    frame_name=frame_name,
                    reference_link=str(entry["frameReferenceLink"]),
                    exported_name=str(entry["exportedFrameName"]),
                    additional_transform=additional,
                )
            except (KeyError, TypeError, ValueError):
                raise ConfigurationError(f"Malformed exportedFrames entry: {entry!r}")
        return frames


def _shape_from_config(shape_config: Mapping[str, Any]) -> Shape:
    """Build a collision primitive from a ``geometricShape`` mapping."""
    origin = [float(v) for v in shape_config["origin"]]
    if len(origin) != 6:
        raise ValueError("origin needs 6 values")
    link_H_geometry = se3.from_xyz_rpy(origin[:3], origin[3:])

    kind = str(shape_config["shape"]).lower()
    if kind == "box":
        size = [float(v) for v in shape_config["size"]]
        if len(size) != 3:
            raise ValueError("box size needs 3 values")
        return Box(size=jnp.asarray(size), link_H_geometry=link_H_geometry)
    if kind == "cylinder":
        length = shape_config["length"] if "length" in shape_config else shape_config["lenght"]
        return Cylinder(
            radius=float(shape_config["radius"]),
            length=float(length),
            link_H_geometry=link_H_geometry,
        )
    if kind == "sphere":
        return Sphere(radius=float(shape_config["radius"]), link_H_geometry=link_H_geometry)
    raise ConfigurationError(f"Unknown collision shape '{shape_config['shape']}'")
