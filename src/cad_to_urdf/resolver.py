"""Resolution of CAD reference frames into scaled model poses.

Lookups against the host can fail (a frame or axis is not defined on the
component, or a component path is stale). These functions never raise for
such misses; they return a result carrying either the pose or the reason,
and the caller decides whether to abort.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import jax.numpy as jnp
from jax import Array

from cad_to_urdf.host import Assembly, Component, ComponentPath
from cad_to_urdf.transforms import se3, so3


class ResolutionFailure(str, Enum):
    FRAME_NOT_FOUND = "frame not found"
    COMPONENT_NOT_FOUND = "component not found"
    AXIS_NOT_FOUND = "axis not found"


@dataclass(frozen=True)
class PoseResult:
    """Either a (4, 4) pose or the reason it could not be resolved."""

    pose: Optional[Array] = None
    failure: Optional[ResolutionFailure] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, pose: Array) -> "PoseResult":
        return cls(pose=pose)

    @classmethod
    def fail(cls, failure: ResolutionFailure, detail: str) -> "PoseResult":
        return cls(failure=failure, detail=detail)


@dataclass(frozen=True)
class AxisResult:
    """Either a (3,) unit direction or the reason it could not be resolved."""

    direction: Optional[Array] = None
    failure: Optional[ResolutionFailure] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


def resolve_part_local_transform(component: Component, frame_name: str, scale: Sequence[float]) -> PoseResult:
    """Pose of ``frame_name`` in the component's own frame.

    An empty ``frame_name`` designates the component frame itself.

    Args:
        component: Component owning the frame.
        frame_name: Name of the coordinate system.
        scale: (3,) per-axis factors from host units to model units.

    Returns:
        PoseResult with ``component_H_frame``.
    """
    if not frame_name:
        return PoseResult.success(se3.identity())

    raw = component.frame_transform(frame_name)
    if raw is None:
        return PoseResult.fail(
            ResolutionFailure.FRAME_NOT_FOUND,
            f"Unable to find the frame {frame_name} in {component.name}",
        )
    return PoseResult.success(se3.scale_translation(jnp.asarray(raw, dtype=jnp.float64), scale))


def resolve_child_in_root(
    assembly: Assembly,
    path: ComponentPath,
    component: Component,
    frame_name: str,
    scale: Sequence[float],
) -> PoseResult:
    """Pose of a component reference frame in the assembly root frame.

    Computes ``root_H_frame = root_H_component @ component_H_frame`` with
    both translations scaled into model units.

    Args:
        assembly: Assembly providing component placements.
        path: Feature path of the component.
        component: The component itself.
        frame_name: Reference frame inside the component ('' for its default frame).
        scale: (3,) per-axis factors from host units to model units.

    Returns:
        PoseResult with ``root_H_frame``.
    """
    raw_placement = assembly.component_placement(path)
    if raw_placement is None:
        return PoseResult.fail(
            ResolutionFailure.COMPONENT_NOT_FOUND,
            f"Unable to find the placement of {component.name} in the assembly",
        )
    root_H_component = se3.scale_translation(jnp.asarray(raw_placement, dtype=jnp.float64), scale)

    local = resolve_part_local_transform(component, frame_name, scale)
    if not local.ok:
        return local

    return PoseResult.success(se3.multiply(root_H_component, local.pose))


def resolve_rotation_axis(
    component: Component,
    axis_name: str,
    link_frame_name: str,
    scale: Sequence[float],
) -> AxisResult:
    """Unit direction of a component axis, expressed in the link frame.

    Args:
        component: Component owning the axis.
        axis_name: Name of the axis feature.
        link_frame_name: Reference frame anchoring the component's link.
        scale: (3,) per-axis factors from host units to model units.

    Returns:
        AxisResult with the direction in the link frame.
    """
    raw = component.axis_direction(axis_name)
    if raw is None:
        return AxisResult(
            failure=ResolutionFailure.AXIS_NOT_FOUND,
            detail=f"Unable to find the axis {axis_name} in {component.name}",
        )

    component_H_link = resolve_part_local_transform(component, link_frame_name, scale)
    if not component_H_link.ok:
        return AxisResult(failure=component_H_link.failure, detail=component_H_link.detail)

    direction = jnp.asarray(raw, dtype=jnp.float64)
    norm = jnp.linalg.norm(direction)
    if float(norm) < 1e-12:
        return AxisResult(
            failure=ResolutionFailure.AXIS_NOT_FOUND,
            detail=f"Axis {axis_name} in {component.name} has zero length",
        )

    R_link = se3.get_rotation(component_H_link.pose)
    return AxisResult(direction=so3.apply(so3.inverse(R_link), direction / norm))


def relative_transform(root_H_parent: Array, root_H_child: Array) -> Array:
    """``parent_H_child = root_H_parent^-1 @ root_H_child``."""
    return se3.multiply(se3.inverse(root_H_parent), root_H_child)
