"""URDF serialization of an assembled robot model.

Additional frames are written the usual way for URDF: a massless link
attached to its reference link by a fixed joint named
``<frame>_fixed_joint``. Caller-provided markup fragments are appended
verbatim just before the closing ``</robot>`` tag.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Union

from jax import Array
from lxml import etree

from cad_to_urdf.core.model import (
    Box,
    Cylinder,
    ExternalMesh,
    Joint,
    JointType,
    Link,
    RobotModel,
    Shape,
    Sphere,
)
from cad_to_urdf.errors import ExportError
from cad_to_urdf.transforms import se3

logger = logging.getLogger(__name__)

FRAME_JOINT_SUFFIX = "_fixed_joint"


@dataclass
class ExportOptions:
    robot_name: str
    base_link: str
    xml_blobs: List[str] = field(default_factory=list)


def format_vector(values: Iterable[float]) -> str:
    # Adding 0.0 turns -0.0 into 0.0
    return " ".join(f"{float(v) + 0.0:.10g}" for v in values)


def origin_element(parent: etree._Element, T: Array) -> etree._Element:
    """Append an ``<origin xyz rpy>`` element describing ``T``."""
    xyz_rpy = se3.to_xyz_rpy(T)
    return etree.SubElement(parent, "origin", xyz=format_vector(xyz_rpy[:3]), rpy=format_vector(xyz_rpy[3:]))


def validate_model(model: RobotModel, options: ExportOptions) -> List[Joint]:
    """Check the model can be exported and return the joints to write.

    The tree is rooted at the base link: joints come oriented away from it.
    Links not reachable from the base link are reported and left out.

    Raises:
        ExportError: If an export option is missing or the base link is
            not in the model.
    """
    if not options.robot_name:
        raise ExportError("Model is not valid! The robot name is empty")
    if not options.base_link:
        raise ExportError("Model is not valid! The base link is empty")
    if not model.has_link(options.base_link):
        raise ExportError(f"Model is not valid! Base link {options.base_link} is not in the model")

    joints = model.tree_joints(options.base_link)
    exported = {options.base_link} | {joint.child for joint in joints}
    for name in model.link_names:
        if name not in exported:
            logger.warning(f"Link {name} is not connected to {options.base_link} and will not be exported")
    return joints


def model_to_urdf(model: RobotModel, options: ExportOptions) -> str:
    """Serialize ``model`` as a URDF document rooted at the base link.

    Raises:
        ExportError: If the model fails validation.
    """
    joints = validate_model(model, options)
    exported_links = [options.base_link] + [joint.child for joint in joints]

    robot = etree.Element("robot", name=options.robot_name)

    for name in exported_links:
        _link_element(robot, model.get_link(name), model)

    for joint in joints:
        element = etree.SubElement(robot, "joint", name=joint.name, type=joint.type.value)
        origin_element(element, joint.parent_H_child)
        etree.SubElement(element, "parent", link=joint.parent)
        etree.SubElement(element, "child", link=joint.child)
        if joint.type == JointType.REVOLUTE:
            etree.SubElement(element, "axis", xyz=format_vector(joint.axis_in_child_frame()))
            limits = joint.limits
            etree.SubElement(
                element,
                "limit",
                lower=format_vector([limits.lower]),
                upper=format_vector([limits.upper]),
                effort=format_vector([limits.effort]),
                velocity=format_vector([limits.velocity]),
            )
            etree.SubElement(
                element,
                "dynamics",
                damping=format_vector([joint.dynamics.damping]),
                friction=format_vector([joint.dynamics.friction]),
            )

    for name in exported_links:
        for frame in model.frames_of(name):
            etree.SubElement(robot, "link", name=frame.name)
            element = etree.SubElement(robot, "joint", name=frame.name + FRAME_JOINT_SUFFIX, type="fixed")
            origin_element(element, frame.link_H_frame)
            etree.SubElement(element, "parent", link=frame.link)
            etree.SubElement(element, "child", link=frame.name)

    body = etree.tostring(robot, pretty_print=True, encoding="unicode")
    closing = body.rindex("</robot>")
    blobs = "".join(f"  {blob}\n" for blob in options.xml_blobs)
    return '<?xml version="1.0"?>\n' + body[:closing] + blobs + body[closing:]


def export_model(model: RobotModel, options: ExportOptions, path: Union[str, Path]) -> None:
    """Validate and write ``model`` to ``path``.

    Raises:
        ExportError: If validation or writing fails.
    """
    document = model_to_urdf(model, options)
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(document)
    except OSError as e:
        raise ExportError(f"Error exporting the urdf to {path}: {e}")
    logger.info(f"Wrote {path}")


def _link_element(robot: etree._Element, link: Link, model: RobotModel) -> None:
    element = etree.SubElement(robot, "link", name=link.name)

    inertia = link.inertia
    inertial = etree.SubElement(element, "inertial")
    etree.SubElement(inertial, "origin", xyz=format_vector(inertia.com), rpy="0 0 0")
    etree.SubElement(inertial, "mass", value=format_vector([inertia.mass]))
    I = inertia.rotational_inertia
    etree.SubElement(
        inertial,
        "inertia",
        ixx=format_vector([I[0, 0]]),
        ixy=format_vector([I[0, 1]]),
        ixz=format_vector([I[0, 2]]),
        iyy=format_vector([I[1, 1]]),
        iyz=format_vector([I[1, 2]]),
        izz=format_vector([I[2, 2]]),
    )

    for shape in model.visual_shapes.get(link.name, []):
        visual = etree.SubElement(element, "visual")
        _shape_elements(visual, shape)
        if isinstance(shape, ExternalMesh):
            material = etree.SubElement(visual, "material", name=f"{link.name}_color")
            etree.SubElement(material, "color", rgba=format_vector(shape.color))

    for shape in model.collision_shapes.get(link.name, []):
        collision = etree.SubElement(element, "collision")
        _shape_elements(collision, shape)


def _shape_elements(parent: etree._Element, shape: Shape) -> None:
    origin_element(parent, shape.link_H_geometry)
    geometry = etree.SubElement(parent, "geometry")
    if isinstance(shape, ExternalMesh):
        etree.SubElement(geometry, "mesh", filename=shape.filename, scale=format_vector(shape.scale))
    elif isinstance(shape, Box):
        etree.SubElement(geometry, "box", size=format_vector(shape.size))
    elif isinstance(shape, Cylinder):
        etree.SubElement(
            geometry, "cylinder", radius=format_vector([shape.radius]), length=format_vector([shape.length])
        )
    elif isinstance(shape, Sphere):
        etree.SubElement(geometry, "sphere", radius=format_vector([shape.radius]))
    else:
        raise ExportError(f"Unsupported shape {type(shape).__name__}")
