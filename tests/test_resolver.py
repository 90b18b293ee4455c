"""Tests for frame, placement and axis resolution."""

import jax.numpy as jnp
import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

from cad_to_urdf.host import MassProperty, StaticAssembly, StaticComponent
from cad_to_urdf.resolver import (
    ResolutionFailure,
    relative_transform,
    resolve_child_in_root,
    resolve_part_local_transform,
    resolve_rotation_axis,
)
from cad_to_urdf.transforms import se3

MM = (0.001, 0.001, 0.001)

angles = st.floats(min_value=-3.0, max_value=3.0, allow_nan=False)
pitches = st.floats(min_value=-1.5, max_value=1.5, allow_nan=False)
coordinates = st.floats(min_value=-500.0, max_value=500.0, allow_nan=False)


def pose(xyz, rpy=(0.0, 0.0, 0.0)) -> np.ndarray:
    return np.asarray(se3.from_xyz_rpy(xyz, rpy))


def _component(**kwargs) -> StaticComponent:
    mass = MassProperty(mass=1.0, center_of_gravity=np.zeros(3), inertia_tensor=np.eye(3))
    return StaticComponent(name="PART_1-1", mass=mass, **kwargs)


def test_empty_frame_name_is_identity():
    """Test the component frame itself resolves to the identity."""
    result = resolve_part_local_transform(_component(), "", MM)
    assert result.ok
    np.testing.assert_allclose(result.pose, jnp.eye(4), rtol=1e-12, atol=1e-12)


def test_local_transform_is_scaled():
    component = _component(coordinate_systems={"SCSYS_A": pose([10.0, 20.0, 30.0], [0.0, 0.0, 0.5])})
    result = resolve_part_local_transform(component, "SCSYS_A", MM)

    assert result.ok
    np.testing.assert_allclose(se3.get_position(result.pose), jnp.array([0.01, 0.02, 0.03]), rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(
        se3.get_rotation(result.pose), se3.get_rotation(se3.from_xyz_rpy([0, 0, 0], [0, 0, 0.5])), atol=1e-12
    )


def test_missing_frame_is_reported():
    result = resolve_part_local_transform(_component(), "SCSYS_MISSING", MM)

    assert not result.ok
    assert result.failure == ResolutionFailure.FRAME_NOT_FOUND
    assert "SCSYS_MISSING" in result.detail
    assert result.pose is None


def test_missing_placement_is_reported():
    assembly = StaticAssembly()
    component = _component()
    result = resolve_child_in_root(assembly, (42,), component, "", MM)

    assert result.failure == ResolutionFailure.COMPONENT_NOT_FOUND


def test_missing_frame_in_placed_component_is_reported():
    assembly = StaticAssembly()
    component = _component()
    feature = assembly.add_component(component, pose([1.0, 0.0, 0.0]))

    result = resolve_child_in_root(assembly, (feature.id,), component, "SCSYS_MISSING", MM)
    assert result.failure == ResolutionFailure.FRAME_NOT_FOUND


@given(coordinates, coordinates, coordinates, angles, pitches, angles)
@settings(deadline=None, max_examples=25)
def test_child_in_root_composes_placement_and_frame(x, y, z, roll, pitch, yaw):
    """Test root_H_frame = scaled placement @ scaled local frame."""
    placement = pose([x, y, z], [roll, pitch, yaw])
    local = pose([5.0, -3.0, 8.0], [0.1, 0.2, 0.3])
    component = _component(coordinate_systems={"SCSYS_A": local})
    assembly = StaticAssembly()
    feature = assembly.add_component(component, placement)

    result = resolve_child_in_root(assembly, (feature.id,), component, "SCSYS_A", MM)

    expected = se3.multiply(se3.scale_translation(placement, MM), se3.scale_translation(local, MM))
    assert result.ok
    np.testing.assert_allclose(result.pose, expected, rtol=1e-9, atol=1e-12)


@given(coordinates, coordinates, coordinates, angles, pitches, angles)
@settings(deadline=None, max_examples=25)
def test_relative_transform_consistency(x, y, z, roll, pitch, yaw):
    """Test root_H_parent @ parent_H_child recovers root_H_child."""
    root_H_parent = se3.from_xyz_rpy([0.3, -0.1, 0.2], [0.5, -0.2, 1.0])
    root_H_child = se3.from_xyz_rpy([x / 1000, y / 1000, z / 1000], [roll, pitch, yaw])

    parent_H_child = relative_transform(root_H_parent, root_H_child)

    np.testing.assert_allclose(se3.multiply(root_H_parent, parent_H_child), root_H_child, rtol=1e-9, atol=1e-9)


def test_axis_in_component_frame():
    """Test the axis is normalized when the link uses the component frame."""
    component = _component(axes={"AXIS_J1": np.array([0.0, 0.0, 2.0])})
    result = resolve_rotation_axis(component, "AXIS_J1", "", MM)

    assert result.ok
    np.testing.assert_allclose(result.direction, jnp.array([0.0, 0.0, 1.0]), rtol=1e-12, atol=1e-12)


def test_axis_in_rotated_link_frame():
    """Test the axis is re-expressed in the link frame anchoring the component."""
    component = _component(
        coordinate_systems={"CSYS_LINK": pose([10.0, 0.0, 0.0], [0.0, 0.0, np.pi / 2])},
        axes={"AXIS_J1": np.array([1.0, 0.0, 0.0])},
    )
    result = resolve_rotation_axis(component, "AXIS_J1", "CSYS_LINK", MM)

    # The component x axis is the link -y axis.
    assert result.ok
    np.testing.assert_allclose(result.direction, jnp.array([0.0, -1.0, 0.0]), rtol=1e-12, atol=1e-12)


def test_missing_axis_is_reported():
    result = resolve_rotation_axis(_component(), "AXIS_MISSING", "", MM)

    assert not result.ok
    assert result.failure == ResolutionFailure.AXIS_NOT_FOUND
    assert result.direction is None


def test_axis_with_missing_link_frame_is_reported():
    component = _component(axes={"AXIS_J1": np.array([0.0, 0.0, 1.0])})
    result = resolve_rotation_axis(component, "AXIS_J1", "CSYS_MISSING", MM)

    assert result.failure == ResolutionFailure.FRAME_NOT_FOUND


def test_zero_length_axis_is_reported():
    component = _component(axes={"AXIS_J1": np.zeros(3)})
    result = resolve_rotation_axis(component, "AXIS_J1", "", MM)

    assert not result.ok
    assert "zero length" in result.detail
