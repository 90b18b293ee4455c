"""Query surface of the CAD host.

The converter never talks to a CAD session directly; it consumes the
``Assembly`` and ``Component`` interfaces below. Transforms are reported in
host units (translation unscaled) as 4x4 homogeneous matrices.

``StaticAssembly`` is an in-memory implementation used to replay assemblies
captured from a host, and by the test-suite.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

# Feature ids from the assembly root down to a component.
ComponentPath = Tuple[int, ...]


@dataclass
class MassProperty:
    """Mass data reported by the host for one component.

    Attributes:
        mass: Component mass.
        center_of_gravity: (3,) center of gravity, host length unit.
        inertia_tensor: (3, 3) inertia about the center of gravity, host units.
    """

    mass: float
    center_of_gravity: np.ndarray
    inertia_tensor: np.ndarray


@dataclass(frozen=True)
class Feature:
    """An assembly feature; only component features become links."""

    id: int
    is_component: bool = True


class Component(ABC):
    """A part model retrieved from an assembly feature.

    Attributes:
        name: Component name as reported by the host.
    """

    name: str

    @abstractmethod
    def list_axes(self) -> Sequence[str]:
        ...

    @abstractmethod
    def list_coordinate_systems(self) -> Sequence[str]:
        ...

    @abstractmethod
    def mass_property(self) -> MassProperty:
        ...

    @abstractmethod
    def frame_transform(self, frame_name: str) -> Optional[np.ndarray]:
        """Pose of a named coordinate system in the component frame, or None."""
        ...

    @abstractmethod
    def axis_direction(self, axis_name: str) -> Optional[np.ndarray]:
        """Direction of a named axis in the component frame, or None."""
        ...

    @abstractmethod
    def export_mesh(self, path: Path, frame_name: str) -> None:
        """Write a binary STL of the component expressed in ``frame_name``."""
        ...


class Assembly(ABC):
    """The assembly being converted."""

    @abstractmethod
    def list_features(self) -> Sequence[Feature]:
        ...

    @abstractmethod
    def retrieve_component(self, feature: Feature) -> Optional[Component]:
        ...

    @abstractmethod
    def component_placement(self, path: ComponentPath) -> Optional[np.ndarray]:
        """Pose of the component at ``path`` in the assembly root frame, or None."""
        ...


@dataclass
class StaticComponent(Component):
    """Component whose geometry and mass data are held in memory."""

    name: str
    mass: MassProperty
    coordinate_systems: Dict[str, np.ndarray] = field(default_factory=dict)
    axes: Dict[str, np.ndarray] = field(default_factory=dict)

    def list_axes(self) -> List[str]:
        return list(self.axes)

    def list_coordinate_systems(self) -> List[str]:
        return list(self.coordinate_systems)

    def mass_property(self) -> MassProperty:
        return self.mass

    def frame_transform(self, frame_name: str) -> Optional[np.ndarray]:
        transform = self.coordinate_systems.get(frame_name)
        return None if transform is None else np.asarray(transform, dtype=float)

    def axis_direction(self, axis_name: str) -> Optional[np.ndarray]:
        direction = self.axes.get(axis_name)
        return None if direction is None else np.asarray(direction, dtype=float)

    def export_mesh(self, path: Path, frame_name: str) -> None:
        # Empty binary STL: 80-byte header followed by a zero triangle count.
        header = f"solid {self.name} @ {frame_name or 'default'}".encode()[:80].ljust(80, b"\0")
        with open(path, "wb") as f:
            f.write(header)
            f.write((0).to_bytes(4, "little"))


class StaticAssembly(Assembly):
    """Assembly made of ``StaticComponent`` placed at fixed root poses."""

    def __init__(self) -> None:
        self._features: List[Feature] = []
        self._components: Dict[int, StaticComponent] = {}
        self._placements: Dict[ComponentPath, np.ndarray] = {}

    def add_component(self, component: StaticComponent, root_H_component: Optional[np.ndarray] = None) -> Feature:
        feature = Feature(id=len(self._features) + 1)
        self._features.append(feature)
        self._components[feature.id] = component
        if root_H_component is None:
            root_H_component = np.eye(4)
        self._placements[(feature.id,)] = np.asarray(root_H_component, dtype=float)
        return feature

    def add_feature(self) -> Feature:
        """Add a non-component feature (datum, cut, ...)."""
        feature = Feature(id=len(self._features) + 1, is_component=False)
        self._features.append(feature)
        return feature

    def list_features(self) -> List[Feature]:
        return list(self._features)

    def retrieve_component(self, feature: Feature) -> Optional[StaticComponent]:
        return self._components.get(feature.id)

    def component_placement(self, path: ComponentPath) -> Optional[np.ndarray]:
        return self._placements.get(tuple(path))
