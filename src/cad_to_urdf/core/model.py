"""Robot model data structures assembled from CAD data.

Value types (inertias, shapes, links, joints, frames) are immutable flax
dataclasses holding JAX arrays. ``RobotModel`` is the mutable container the
conversion run fills in; it rejects duplicate names and kinematic loops
on insertion and exclusively owns everything added to it.
"""

from collections import deque
from enum import Enum
from typing import Dict, List, Optional, Union

import jax.numpy as jnp
from flax import struct
from jax import Array

from cad_to_urdf.errors import ModelError
from cad_to_urdf.transforms import se3


@struct.dataclass
class SpatialInertia:
    """Rigid-body inertia expressed in a link frame.

    Attributes:
        mass: Mass of the body.
        com: (3,) center of mass position in the link frame.
        rotational_inertia: (3, 3) symmetric inertia about the center of mass,
                            with axes parallel to the link frame.
    """
    mass: float
    com: Array
    rotational_inertia: Array


@struct.dataclass
class ExternalMesh:
    """Mesh file reference with its per-axis scale and RGBA color."""
    filename: str = struct.field(pytree_node=False)
    scale: Array
    color: Array
    link_H_geometry: Array = struct.field(default_factory=se3.identity)


@struct.dataclass
class Box:
    size: Array
    link_H_geometry: Array = struct.field(default_factory=se3.identity)


@struct.dataclass
class Cylinder:
    radius: float
    length: float
    link_H_geometry: Array = struct.field(default_factory=se3.identity)


@struct.dataclass
class Sphere:
    radius: float
    link_H_geometry: Array = struct.field(default_factory=se3.identity)


Shape = Union[ExternalMesh, Box, Cylinder, Sphere]


@struct.dataclass
class Link:
    """A rigid body of the robot.

    Attributes:
        name: Canonical link name (after renaming).
        inertia: Spatial inertia in the link frame.
        root_H_link: (4, 4) pose of the link frame in the assembly root frame.
        frame_name: CAD reference frame anchoring the link and its meshes;
                    empty for the component's default frame.
    """
    name: str = struct.field(pytree_node=False)
    inertia: SpatialInertia
    root_H_link: Array = struct.field(default_factory=se3.identity)
    frame_name: str = struct.field(pytree_node=False, default="")


class JointType(str, Enum):
    REVOLUTE = "revolute"
    FIXED = "fixed"


@struct.dataclass
class JointLimits:
    """Position limits in radians plus effort and velocity bounds."""
    lower: float
    upper: float
    effort: float
    velocity: float


@struct.dataclass
class JointDynamics:
    damping: float
    friction: float


@struct.dataclass
class Joint:
    """A joint connecting two links.

    Attributes:
        name: Joint name.
        type: Revolute or fixed.
        parent: Parent link name.
        child: Child link name.
        parent_H_child: (4, 4) pose of the child link frame in the parent
                        link frame at zero joint position.
        axis: (3,) unit rotation axis in the parent link frame. Revolute only.
        limits: Position limits. Revolute only.
        dynamics: Damping and static friction. Revolute only.
    """
    name: str = struct.field(pytree_node=False)
    type: JointType = struct.field(pytree_node=False)
    parent: str = struct.field(pytree_node=False)
    child: str = struct.field(pytree_node=False)
    parent_H_child: Array
    axis: Optional[Array] = None
    limits: Optional[JointLimits] = None
    dynamics: Optional[JointDynamics] = None

    def axis_in_child_frame(self) -> Array:
        """Rotation axis expressed in the child link frame."""
        R = se3.get_rotation(self.parent_H_child)
        return jnp.matmul(R.T, self.axis)

    def reversed(self) -> "Joint":
        """The same joint seen from its child link.

        Parent and child are swapped and the pose is inverted. The axis is
        re-expressed in the new parent frame and negated, so a given joint
        position still describes the same relative configuration.
        """
        axis = None if self.axis is None else -self.axis_in_child_frame()
        return self.replace(
            parent=self.child,
            child=self.parent,
            parent_H_child=se3.inverse(self.parent_H_child),
            axis=axis,
        )


@struct.dataclass
class AdditionalFrame:
    """A named non-link frame rigidly attached to a link."""
    name: str = struct.field(pytree_node=False)
    link: str = struct.field(pytree_node=False)
    link_H_frame: Array


class RobotModel:
    """Links connected by joints into a forest, with auxiliary frames.

    Links, joints and frames share one namespace. Every joint endpoint must
    already be a link and no joint may close a cycle. The stored parent and
    child of a joint only name its endpoints: a link may be the child of
    several joints, and ``tree_joints`` orients the tree from any base link.
    """

    def __init__(self) -> None:
        self.links: Dict[str, Link] = {}
        self.joints: Dict[str, Joint] = {}
        self.frames: Dict[str, AdditionalFrame] = {}
        self.visual_shapes: Dict[str, List[Shape]] = {}
        self.collision_shapes: Dict[str, List[Shape]] = {}
        self._link_joints: Dict[str, List[str]] = {}

    # Links
    def add_link(self, link: Link) -> None:
        if self._is_name_taken(link.name):
            raise ModelError(f"Cannot add link '{link.name}': name already in use")
        self.links[link.name] = link
        self.visual_shapes[link.name] = []
        self.collision_shapes[link.name] = []
        self._link_joints[link.name] = []

    def has_link(self, name: str) -> bool:
        return name in self.links

    def get_link(self, name: str) -> Link:
        try:
            return self.links[name]
        except KeyError:
            raise ModelError(f"Link '{name}' not found in robot model")

    def add_visual_shape(self, link_name: str, shape: Shape) -> None:
        self.get_link(link_name)
        self.visual_shapes[link_name].append(shape)

    def add_collision_shape(self, link_name: str, shape: Shape) -> None:
        self.get_link(link_name)
        self.collision_shapes[link_name].append(shape)

    # Joints
    def add_joint(self, joint: Joint) -> None:
        if self._is_name_taken(joint.name):
            raise ModelError(f"Cannot add joint '{joint.name}': name already in use")
        for endpoint in (joint.parent, joint.child):
            if endpoint not in self.links:
                raise ModelError(f"Cannot add joint '{joint.name}': unknown link '{endpoint}'")
        if joint.parent == joint.child:
            raise ModelError(f"Cannot add joint '{joint.name}': parent and child are both '{joint.parent}'")
        if joint.child in self.connected_links(joint.parent):
            raise ModelError(f"Cannot add joint '{joint.name}': it would close a kinematic loop")

        self.joints[joint.name] = joint
        self._link_joints[joint.parent].append(joint.name)
        self._link_joints[joint.child].append(joint.name)

    def has_joint(self, name: str) -> bool:
        return name in self.joints

    def get_joint(self, name: str) -> Optional[Joint]:
        return self.joints.get(name)

    def joints_of(self, link_name: str) -> List[Joint]:
        """Joints having ``link_name`` as parent or child, in insertion order."""
        return [self.joints[name] for name in self._link_joints.get(link_name, [])]

    def connected_links(self, base: str) -> List[str]:
        """Links connected to ``base`` through joints, in breadth-first order."""
        ordered = [base]
        for name in ordered:
            for joint in self.joints_of(name):
                other = joint.child if joint.parent == name else joint.parent
                if other not in ordered:
                    ordered.append(other)
        return ordered

    def tree_joints(self, base: str) -> List[Joint]:
        """Joints of the tree containing ``base``, oriented away from it.

        Joints come in breadth-first order. A joint reached from its stored
        child is returned reversed.
        """
        visited = {base}
        queue = deque([base])
        oriented = []
        while queue:
            name = queue.popleft()
            for joint in self.joints_of(name):
                if joint.parent == name and joint.child not in visited:
                    outward = joint
                elif joint.child == name and joint.parent not in visited:
                    outward = joint.reversed()
                else:
                    continue
                visited.add(outward.child)
                queue.append(outward.child)
                oriented.append(outward)
        return oriented

    # Additional frames
    def add_additional_frame_to_link(self, link_name: str, frame_name: str, link_H_frame: Array) -> None:
        if link_name not in self.links:
            raise ModelError(f"Cannot add frame '{frame_name}': link '{link_name}' is not in the model")
        if self._is_name_taken(frame_name):
            raise ModelError(f"Cannot add frame '{frame_name}': name already in use")
        self.frames[frame_name] = AdditionalFrame(name=frame_name, link=link_name, link_H_frame=link_H_frame)

    def frames_of(self, link_name: str) -> List[AdditionalFrame]:
        return [frame for frame in self.frames.values() if frame.link == link_name]

    @property
    def link_names(self) -> List[str]:
        return list(self.links)

    @property
    def joint_names(self) -> List[str]:
        return list(self.joints)

    @property
    def frame_names(self) -> List[str]:
        return list(self.frames)

    def _is_name_taken(self, name: str) -> bool:
        return name in self.links or name in self.joints or name in self.frames

    def to_string(self) -> str:
        """Plain-text dump of the model, one element per line."""
        lines = [f"Model: {len(self.links)} links, {len(self.joints)} joints, {len(self.frames)} additional frames"]
        lines.append("Links:")
        for link in self.links.values():
            com = ", ".join(f"{float(c):.6g}" for c in link.inertia.com)
            lines.append(f"  {link.name}: mass {float(link.inertia.mass):.6g}, com [{com}]")
        lines.append("Joints:")
        for joint in self.joints.values():
            xyz_rpy = ", ".join(f"{float(v):.6g}" for v in se3.to_xyz_rpy(joint.parent_H_child))
            line = f"  {joint.name} ({joint.type.value}): {joint.parent} -> {joint.child}, origin [{xyz_rpy}]"
            if joint.axis is not None:
                line += ", axis [" + ", ".join(f"{float(a):.6g}" for a in joint.axis) + "]"
            lines.append(line)
        lines.append("Additional frames:")
        for frame in self.frames.values():
            lines.append(f"  {frame.name} on {frame.link}")
        return "\n".join(lines) + "\n"
