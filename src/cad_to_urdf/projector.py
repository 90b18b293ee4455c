"""Attachment of auxiliary frames to the links of the assembled model.

Exported frames come from the configuration or, when
``exportAllUseradded`` is set, from every user-added coordinate system of
the traversed components. Sensor frames are attached as provided. A frame
whose target link or joint is missing is skipped with a warning.
"""

import logging
from typing import Dict, Iterable, Set

from cad_to_urdf.core.model import RobotModel
from cad_to_urdf.errors import ModelError, ResolutionError
from cad_to_urdf.host import Component
from cad_to_urdf.joints import FIXED_JOINT_MARKER
from cad_to_urdf.resolver import resolve_part_local_transform
from cad_to_urdf.sensors import FTSensor, Sensor
from cad_to_urdf.session import ConversionSession, ExportedFrameInfo, LinkInfo
from cad_to_urdf.transforms import se3

logger = logging.getLogger(__name__)

USERADDED_SUFFIX = "_USERADDED"


def discover_exported_frames(session: ConversionSession, component: Component, link: LinkInfo) -> None:
    """Register and resolve the exported frames defined on one component.

    The frame pose is expressed in the link frame of ``link``:
    ``linkFrame_H_frame = (component_H_linkFrame)^-1 @ component_H_frame``.
    A frame already resolved on another part is only resolved again on
    the component of its reference link.

    Raises:
        ResolutionError: If the frame or the link frame cannot be resolved.
    """
    config = session.config
    for csys_name in component.list_coordinate_systems():
        if (config.export_all_useradded
                and FIXED_JOINT_MARKER in csys_name
                and csys_name not in session.exported_frames):
            session.exported_frames[csys_name] = ExportedFrameInfo(
                frame_name=csys_name,
                reference_link=link.name,
                exported_name=csys_name + USERADDED_SUFFIX,
                user_added=True,
            )

        info = session.exported_frames.get(csys_name)
        if info is None:
            continue
        if info.link_frame_H_frame is not None and link.name != info.reference_link:
            logger.debug(f"Frame {csys_name} is also defined in {link.name}, keeping the one of {info.found_on}")
            continue

        component_H_frame = resolve_part_local_transform(component, csys_name, config.scale)
        component_H_link = resolve_part_local_transform(component, link.frame_name, config.scale)
        for result in (component_H_frame, component_H_link):
            if not result.ok:
                raise ResolutionError(result.detail)

        info.link_frame_H_frame = se3.multiply(se3.inverse(component_H_link.pose), component_H_frame.pose)
        info.found_on = link.name


def attach_sensors(model: RobotModel, sensors: Iterable[Sensor]) -> None:
    for sensor in sensors:
        if not sensor.export_frame:
            continue
        try:
            model.add_additional_frame_to_link(sensor.link_name, sensor.exported_frame_name, sensor.link_H_sensor)
        except ModelError as e:
            logger.warning(f"Failed to add additional frame {sensor.exported_frame_name}: {e}")


def attach_ft_sensors(model: RobotModel, ft_sensors: Iterable[FTSensor]) -> None:
    """Attach FT sensor frames to the parent link of their joint."""
    for ft_sensor in ft_sensors:
        if not ft_sensor.export_frame:
            continue
        joint = model.get_joint(ft_sensor.joint_name)
        if joint is None:
            logger.warning(
                f"Failed to add additional frame, ftsensor: {ft_sensor.name} is not in the model "
                f"(no joint {ft_sensor.joint_name})"
            )
            continue
        try:
            model.add_additional_frame_to_link(
                joint.parent, ft_sensor.exported_frame_name, ft_sensor.parent_link_H_sensor
            )
        except ModelError as e:
            logger.warning(f"Failed to add additional frame {ft_sensor.exported_frame_name}: {e}")


def attach_exported_frames(
    model: RobotModel,
    exported_frames: Dict[str, ExportedFrameInfo],
    consumed_fixed_frames: Set[str],
) -> None:
    """Attach exported frames, composing the optional additional transform.

    A frame found on another link than its reference link is mapped through
    the root frame: ``ref_H_frame = root_H_ref^-1 @ root_H_found @ found_H_frame``.
    User-added frames that became fixed joints are not exported.
    """
    for info in exported_frames.values():
        if info.user_added and info.frame_name in consumed_fixed_frames:
            continue
        if info.link_frame_H_frame is None:
            logger.warning(f"Failed to add additional frame {info.exported_name}: {info.frame_name} was not found in any part")
            continue
        if not model.has_link(info.reference_link):
            logger.warning(f"Failed to add additional frame, link {info.reference_link} is not in the model")
            continue

        link_H_frame = info.link_frame_H_frame
        if info.found_on != info.reference_link:
            root_H_ref = model.get_link(info.reference_link).root_H_link
            root_H_found = model.get_link(info.found_on).root_H_link
            link_H_frame = se3.multiply(se3.multiply(se3.inverse(root_H_ref), root_H_found), link_H_frame)
        if info.additional_transform is not None:
            link_H_frame = se3.multiply(link_H_frame, info.additional_transform)

        try:
            model.add_additional_frame_to_link(info.reference_link, info.exported_name, link_H_frame)
        except ModelError as e:
            logger.warning(f"Failed to add additional frame {info.exported_name}: {e}")
