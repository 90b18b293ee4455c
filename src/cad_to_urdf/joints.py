"""Joint discovery and kinematic tree assembly.

Joints are not stored explicitly in the CAD assembly. Two parts sharing a
rotational axis name are connected by a revolute joint, and two parts
sharing a coordinate system whose name carries ``FIXED_JOINT_MARKER`` are
rigidly connected. The first component seen with a given name becomes the
parent and the second one the child; the exporter re-roots the tree at
the base link.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Union

import jax.numpy as jnp

from cad_to_urdf.core.model import Joint, JointDynamics, JointLimits, JointType
from cad_to_urdf.errors import ModelError, ResolutionError
from cad_to_urdf.host import Component
from cad_to_urdf.io.joint_limits import JointLimitsTable
from cad_to_urdf.resolver import relative_transform, resolve_rotation_axis

if TYPE_CHECKING:
    from cad_to_urdf.session import ConversionSession

logger = logging.getLogger(__name__)

# Coordinate systems containing this marker are user-added and define fixed joints.
FIXED_JOINT_MARKER = "SCSYS"

JOINT_NAME_SEPARATOR = "--"


# Endpoint states of a joint candidate
@dataclass(frozen=True)
class Unseen:
    pass


@dataclass(frozen=True)
class OneEndpoint:
    parent: str


@dataclass(frozen=True)
class TwoEndpoints:
    parent: str
    child: str


EndpointState = Union[Unseen, OneEndpoint, TwoEndpoints]


class EndpointOverflow(Exception):
    """A joint name was registered by a third link."""


def advance(state: EndpointState, link_name: str) -> EndpointState:
    """Register ``link_name`` as the next endpoint of a candidate.

    Raises:
        EndpointOverflow: If the candidate already has two endpoints.
    """
    if isinstance(state, Unseen):
        return OneEndpoint(parent=link_name)
    if isinstance(state, OneEndpoint):
        return TwoEndpoints(parent=state.parent, child=link_name)
    raise EndpointOverflow(f"already connects {state.parent} and {state.child}")


@dataclass
class JointCandidate:
    name: str
    type: JointType
    state: EndpointState = field(default_factory=Unseen)

    @property
    def parent(self) -> Optional[str]:
        return None if isinstance(self.state, Unseen) else self.state.parent

    @property
    def child(self) -> Optional[str]:
        return self.state.child if isinstance(self.state, TwoEndpoints) else None

    @property
    def is_complete(self) -> bool:
        return isinstance(self.state, TwoEndpoints)


class JointCandidateTable:
    """Joint candidates keyed by axis or coordinate-system name."""

    def __init__(self) -> None:
        self._candidates: Dict[str, JointCandidate] = {}
        self.errors: List[str] = []

    def __len__(self) -> int:
        return len(self._candidates)

    def __contains__(self, name: str) -> bool:
        return name in self._candidates

    def get(self, name: str) -> Optional[JointCandidate]:
        return self._candidates.get(name)

    def register(self, name: str, joint_type: JointType, link_name: str) -> None:
        """Record that ``link_name`` carries the axis or frame ``name``.

        A third link registering an already complete candidate is a model
        error: it is reported and the first two endpoints are kept.
        """
        candidate = self._candidates.setdefault(name, JointCandidate(name=name, type=joint_type))

        if link_name in (candidate.parent, candidate.child):
            logger.warning(f"{name} appears more than once in {link_name}, ignoring the repetition")
            return
        if candidate.type != joint_type:
            logger.warning(
                f"{name} is both an axis and a coordinate system; keeping it as a {candidate.type.value} joint"
            )

        try:
            candidate.state = advance(candidate.state, link_name)
        except EndpointOverflow as e:
            message = f"Joint {name} found in a third link {link_name}: it {e}"
            self.errors.append(message)
            logger.warning(message)

    def complete(self) -> List[JointCandidate]:
        """Candidates with both endpoints, in name order. Dangling ones are dropped."""
        result = []
        for name in sorted(self._candidates):
            candidate = self._candidates[name]
            if candidate.is_complete:
                result.append(candidate)
            else:
                logger.debug(f"Dropping {name}: no child link found (cut assembly?)")
        return result

    def consumed_fixed_frames(self) -> Set[str]:
        """Coordinate-system names that became fixed joints."""
        return {c.name for c in self._candidates.values() if c.type == JointType.FIXED and c.is_complete}


def discover_joints(component: Component, link_name: str, table: JointCandidateTable) -> None:
    """Register the axes and fixed-joint frames of one component.

    Args:
        component: Traversed component.
        link_name: Host name of the component, used as endpoint key.
        table: Candidate table of the current session.
    """
    axes = component.list_axes()
    if not axes:
        logger.warning(f"There is no AXIS in the part {link_name}")
    for axis_name in axes:
        table.register(axis_name, JointType.REVOLUTE, link_name)

    csys_names = component.list_coordinate_systems()
    if not csys_names:
        logger.warning(f"There is no CSYS in the part {link_name}")
    for csys_name in csys_names:
        # General frames such as CSYS or ASM_CSYS never define joints
        if FIXED_JOINT_MARKER not in csys_name:
            continue
        table.register(csys_name, JointType.FIXED, link_name)


def build_joints(session: "ConversionSession", limits: JointLimitsTable) -> None:
    """Turn complete joint candidates into joints of the session model.

    Raises:
        ResolutionError: If a revolute axis cannot be resolved.
        JointLimitsError: If a revolute joint has no row in ``limits``.
        ModelError: If a joint cannot be inserted into the model.
    """
    config = session.config

    for candidate in session.joint_candidates.complete():
        parent = session.links[candidate.parent]
        child = session.links[candidate.child]

        joint_name = config.rename(candidate.parent + JOINT_NAME_SEPARATOR + candidate.child)
        parent_H_child = relative_transform(parent.root_H_link, child.root_H_link)

        if candidate.type == JointType.REVOLUTE:
            axis = resolve_rotation_axis(parent.component, candidate.name, parent.frame_name, config.scale)
            if not axis.ok:
                raise ResolutionError(axis.detail)
            direction = axis.direction
            if config.is_rotation_axis_reversed(joint_name):
                direction = -direction

            row = limits.lookup(joint_name)
            joint = Joint(
                name=joint_name,
                type=JointType.REVOLUTE,
                parent=parent.name,
                child=child.name,
                parent_H_child=parent_H_child,
                axis=direction,
                limits=JointLimits(
                    lower=float(jnp.deg2rad(row.lower_deg)),
                    upper=float(jnp.deg2rad(row.upper_deg)),
                    effort=row.max_effort,
                    velocity=row.max_velocity,
                ),
                dynamics=JointDynamics(damping=row.damping, friction=row.friction),
            )
        else:
            joint = Joint(
                name=joint_name,
                type=JointType.FIXED,
                parent=parent.name,
                child=child.name,
                parent_H_child=parent_H_child,
            )

        try:
            session.model.add_joint(joint)
        except ModelError as e:
            raise ModelError(f"FAILED TO ADD JOINT {joint_name}: {e}") from e
