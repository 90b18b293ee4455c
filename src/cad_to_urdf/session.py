"""Per-run conversion state.

A ``ConversionSession`` is created at the start of every run and owns all
the tables filled while the assembly is traversed. Nothing survives from
one run to the next.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from jax import Array

from cad_to_urdf.config import ConversionConfig
from cad_to_urdf.core.model import RobotModel
from cad_to_urdf.host import Component
from cad_to_urdf.joints import JointCandidateTable


@dataclass
class LinkInfo:
    """A traversed component and the link built from it.

    Attributes:
        cad_name: Component name as reported by the host.
        name: Canonical link name.
        component: Host handle of the component.
        root_H_link: (4, 4) link pose in the root frame.
        frame_name: Reference frame anchoring the link ('' for the component frame).
    """

    cad_name: str
    name: str
    component: Component
    root_H_link: Array
    frame_name: str = ""


@dataclass
class ExportedFrameInfo:
    """A coordinate system exported as an additional frame of a link.

    ``link_frame_H_frame`` stays None until the coordinate system is found on
    a traversed component; it is then expressed in the link frame of
    ``found_on``, which is the reference link whenever that link carries it.
    """

    frame_name: str
    reference_link: str
    exported_name: str
    additional_transform: Optional[Array] = None
    link_frame_H_frame: Optional[Array] = None
    found_on: str = ""
    user_added: bool = False


@dataclass
class ConversionSession:
    config: ConversionConfig
    model: RobotModel = field(default_factory=RobotModel)
    links: Dict[str, LinkInfo] = field(default_factory=dict)
    joint_candidates: JointCandidateTable = field(default_factory=JointCandidateTable)
    exported_frames: Dict[str, ExportedFrameInfo] = field(default_factory=dict)

    @classmethod
    def start(cls, config: ConversionConfig) -> "ConversionSession":
        """Fresh session seeded with the explicitly configured exported frames."""
        session = cls(config=config)
        for entry in config.exported_frames.values():
            session.exported_frames[entry.frame_name] = ExportedFrameInfo(
                frame_name=entry.frame_name,
                reference_link=entry.reference_link,
                exported_name=entry.exported_name,
                additional_transform=entry.additional_transform,
            )
        return session
