"""URDF parser for reading exported robot models back.

Massless leaf links attached by a fixed joint are read as additional
frames of their parent link, the inverse of what ``urdf_writer`` does.
Markup fragments appended to the document (gazebo, sensors) are ignored.
"""

from collections import deque
from typing import Dict, List, Optional

import jax.numpy as jnp
from lxml import etree

from cad_to_urdf.core.model import (
    Box,
    Cylinder,
    ExternalMesh,
    Joint,
    JointDynamics,
    JointLimits,
    JointType,
    Link,
    RobotModel,
    Shape,
    SpatialInertia,
    Sphere,
)
from cad_to_urdf.transforms import se3


def load_urdf(urdf_path: str) -> RobotModel:
    """Load a URDF file into a RobotModel.

    Args:
        urdf_path: Path to the URDF file to load.

    Returns:
        RobotModel: links in breadth-first order from the root, their joints
        and additional frames.
    """
    tree = etree.parse(urdf_path)
    root = tree.getroot()

    # First pass: Build topology mappings
    link_elems: Dict[str, etree._Element] = {}
    for link in root.findall('link'):
        link_elems[link.get('name')] = link

    joints_info = []
    child_links = set()
    for joint in root.findall('joint'):
        parent_elem = joint.find('parent')
        child_elem = joint.find('child')
        if parent_elem is None or child_elem is None:
            continue
        joints_info.append({
            'name': joint.get('name'),
            'type': joint.get('type'),
            'parent': parent_elem.get('link'),
            'child': child_elem.get('link'),
            'joint_elem': joint
        })
        child_links.add(child_elem.get('link'))

    # Find root link (not a child of any joint)
    root_links = set(link_elems) - child_links
    if len(root_links) != 1:
        raise ValueError(f"Expected exactly one root link, found: {root_links}")
    root_link = root_links.pop()

    parents_with_children = {info['parent'] for info in joints_info}
    frame_joints = {
        info['child']: info for info in joints_info
        if info['type'] == 'fixed'
        and info['child'] not in parents_with_children
        and len(link_elems[info['child']]) == 0
    }

    # Order links using breadth-first traversal from root
    ordered_links: List[str] = []
    queue = deque([root_link])
    visited = set()
    while queue:
        current_link = queue.popleft()
        if current_link in visited or current_link in frame_joints:
            continue
        visited.add(current_link)
        ordered_links.append(current_link)
        for joint_info in joints_info:
            if joint_info['parent'] == current_link and joint_info['child'] not in visited:
                queue.append(joint_info['child'])

    joint_by_child = {info['child']: info for info in joints_info}

    # Second pass: Populate the model
    model = RobotModel()
    root_poses = {root_link: se3.identity()}
    for link_name in ordered_links:
        joint_info = joint_by_child.get(link_name)
        if joint_info is not None:
            parent_H_child = _parse_origin(joint_info['joint_elem'])
            root_poses[link_name] = se3.multiply(root_poses[joint_info['parent']], parent_H_child)

        link_elem = link_elems[link_name]
        model.add_link(Link(name=link_name, inertia=_parse_inertial(link_elem), root_H_link=root_poses[link_name]))
        for visual in link_elem.findall('visual'):
            shape = _parse_shape(visual)
            if shape is not None:
                model.add_visual_shape(link_name, shape)
        for collision in link_elem.findall('collision'):
            shape = _parse_shape(collision)
            if shape is not None:
                model.add_collision_shape(link_name, shape)

    for link_name in ordered_links:
        joint_info = joint_by_child.get(link_name)
        if joint_info is not None:
            model.add_joint(_parse_joint(joint_info))

    for frame_name, joint_info in frame_joints.items():
        model.add_additional_frame_to_link(joint_info['parent'], frame_name, _parse_origin(joint_info['joint_elem']))

    return model


def _parse_vector(text: Optional[str], default: str) -> jnp.ndarray:
    return jnp.array([float(x) for x in (text or default).split()])


def _parse_origin(elem: etree._Element) -> jnp.ndarray:
    origin_elem = elem.find('origin')
    if origin_elem is None:
        return se3.identity()
    return se3.from_xyz_rpy(
        _parse_vector(origin_elem.get('xyz'), '0 0 0'),
        _parse_vector(origin_elem.get('rpy'), '0 0 0'),
    )


def _parse_inertial(link_elem: etree._Element) -> SpatialInertia:
    inertial = link_elem.find('inertial')
    if inertial is None:
        return SpatialInertia(mass=0.0, com=jnp.zeros(3), rotational_inertia=jnp.zeros((3, 3)))

    mass_elem = inertial.find('mass')
    mass = float(mass_elem.get('value', '0')) if mass_elem is not None else 0.0

    I = jnp.zeros((3, 3))
    inertia_elem = inertial.find('inertia')
    if inertia_elem is not None:
        values = {key: float(inertia_elem.get(key, '0')) for key in ('ixx', 'ixy', 'ixz', 'iyy', 'iyz', 'izz')}
        I = jnp.array([
            [values['ixx'], values['ixy'], values['ixz']],
            [values['ixy'], values['iyy'], values['iyz']],
            [values['ixz'], values['iyz'], values['izz']],
        ])

    # Rotate the tensor into the link frame when the inertial frame is rotated
    link_H_inertial = _parse_origin(inertial)
    R = se3.get_rotation(link_H_inertial)
    return SpatialInertia(mass=mass, com=se3.get_position(link_H_inertial), rotational_inertia=R @ I @ R.T)


def _parse_shape(elem: etree._Element) -> Optional[Shape]:
    geometry = elem.find('geometry')
    if geometry is None or len(geometry) == 0:
        return None
    link_H_geometry = _parse_origin(elem)
    shape_elem = geometry[0]

    if shape_elem.tag == 'mesh':
        color = jnp.array([0.5, 0.5, 0.5, 1.0])
        color_elem = elem.find('material/color')
        if color_elem is not None:
            color = _parse_vector(color_elem.get('rgba'), '0.5 0.5 0.5 1')
        return ExternalMesh(
            filename=shape_elem.get('filename'),
            scale=_parse_vector(shape_elem.get('scale'), '1 1 1'),
            color=color,
            link_H_geometry=link_H_geometry,
        )
    if shape_elem.tag == 'box':
        return Box(size=_parse_vector(shape_elem.get('size'), '0 0 0'), link_H_geometry=link_H_geometry)
    if shape_elem.tag == 'cylinder':
        return Cylinder(
            radius=float(shape_elem.get('radius', '0')),
            length=float(shape_elem.get('length', '0')),
            link_H_geometry=link_H_geometry,
        )
    if shape_elem.tag == 'sphere':
        return Sphere(radius=float(shape_elem.get('radius', '0')), link_H_geometry=link_H_geometry)
    return None


def _parse_joint(joint_info: dict) -> Joint:
    joint_elem = joint_info['joint_elem']
    parent_H_child = _parse_origin(joint_elem)

    if joint_info['type'] == 'fixed':
        return Joint(
            name=joint_info['name'],
            type=JointType.FIXED,
            parent=joint_info['parent'],
            child=joint_info['child'],
            parent_H_child=parent_H_child,
        )
    if joint_info['type'] not in ('revolute', 'continuous'):
        raise ValueError(f"Unsupported joint type '{joint_info['type']}' for joint {joint_info['name']}")

    axis_elem = joint_elem.find('axis')
    axis_child = _parse_vector(axis_elem.get('xyz') if axis_elem is not None else None, '1 0 0')
    # URDF axes are expressed in the joint (child) frame
    axis = se3.get_rotation(parent_H_child) @ axis_child

    limits = None
    limit_elem = joint_elem.find('limit')
    if limit_elem is not None:
        limits = JointLimits(
            lower=float(limit_elem.get('lower', '0')),
            upper=float(limit_elem.get('upper', '0')),
            effort=float(limit_elem.get('effort', '0')),
            velocity=float(limit_elem.get('velocity', '0')),
        )

    dynamics = None
    dynamics_elem = joint_elem.find('dynamics')
    if dynamics_elem is not None:
        dynamics = JointDynamics(
            damping=float(dynamics_elem.get('damping', '0')),
            friction=float(dynamics_elem.get('friction', '0')),
        )

    return Joint(
        name=joint_info['name'],
        type=JointType.REVOLUTE,
        parent=joint_info['parent'],
        child=joint_info['child'],
        parent_H_child=parent_H_child,
        axis=axis,
        limits=limits,
        dynamics=dynamics,
    )
