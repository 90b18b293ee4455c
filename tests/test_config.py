"""Tests for the configuration resolver."""

import logging

import jax.numpy as jnp
import numpy as np
import pytest

from cad_to_urdf.config import ConversionConfig, load_config
from cad_to_urdf.core import Box, Cylinder, Sphere
from cad_to_urdf.errors import ConfigurationError
from cad_to_urdf.transforms import se3


def test_defaults_for_empty_document():
    """Test every optional accessor falls back to its default."""
    config = ConversionConfig({})

    assert config.scale == (1.0, 1.0, 1.0)
    assert config.origin_xyz == (0.0, 0.0, 0.0)
    assert config.origin_rpy == (0.0, 0.0, 0.0)
    assert config.export_all_useradded is False
    assert config.xml_blobs is None
    assert config.assigned_mass("link") is None
    assert config.assigned_color("link") == (0.5, 0.5, 0.5, 1.0)
    assert config.link_frame("link") == ""
    assert config.filename_format == "%s"
    assert config.force_lowercase is False
    assert config.mesh_name_strip is None
    assert not config.is_rotation_axis_reversed("joint")
    assert config.assigned_inertias == {}
    assert config.assigned_collision_geometry == {}
    assert config.exported_frames == {}


def test_rename_falls_back_to_identity(caplog):
    """Test unmapped names are kept with a warning."""
    config = ConversionConfig({"rename": {"ARM_1-1": "upper_arm"}})

    assert config.rename("ARM_1-1") == "upper_arm"
    with caplog.at_level(logging.WARNING):
        assert config.rename("ARM_2-1") == "ARM_2-1"
    assert "ARM_2-1 is not present" in caplog.text


def test_rename_is_idempotent():
    """Test renaming a canonical name returns it unchanged."""
    config = ConversionConfig({"rename": {"ARM_1-1": "upper_arm", "ARM_2-1": "forearm"}})
    for name in ("ARM_1-1", "ARM_2-1", "SOMETHING_ELSE"):
        canonical = config.rename(name)
        assert config.rename(canonical) == canonical


def test_link_frame_lookup():
    """Test linkFrames entries are matched on the canonical link name."""
    config = ConversionConfig({"linkFrames": [
        {"linkName": "upper_arm", "frameName": "SCSYS_UPPER_ARM"},
        {"linkName": "forearm", "frameName": "CSYS_FOREARM"},
    ]})
    assert config.link_frame("upper_arm") == "SCSYS_UPPER_ARM"
    assert config.link_frame("forearm") == "CSYS_FOREARM"
    assert config.link_frame("hand") == ""


def test_vectors_and_flags():
    config = ConversionConfig({
        "scale": [0.001, 0.001, 0.002],
        "originXYZ": [0, 0, 0.6],
        "originRPY": [0, 0, 3.14],
        "exportAllUseradded": True,
        "forcelowercase": True,
        "filenameformat": "package://arm/meshes/%s",
        "stringToRemoveFromMeshFileName": "_1-1",
    })
    assert config.scale == (0.001, 0.001, 0.002)
    assert config.origin_xyz == (0.0, 0.0, 0.6)
    assert config.origin_rpy == (0.0, 0.0, 3.14)
    assert config.export_all_useradded is True
    assert config.force_lowercase is True
    assert config.filename_format == "package://arm/meshes/%s"
    assert config.mesh_name_strip == "_1-1"


def test_malformed_scale_is_fatal():
    with pytest.raises(ConfigurationError):
        ConversionConfig({"scale": [1.0, 2.0]}).scale
    with pytest.raises(ConfigurationError):
        ConversionConfig({"scale": 3}).scale


def test_assigned_mass_and_color():
    config = ConversionConfig({
        "assignedMasses": {"ARM_1-1": 2.5},
        "assignedColors": {"ARM_1-1": [1, 0, 0, 1]},
    })
    assert config.assigned_mass("ARM_1-1") == 2.5
    assert config.assigned_color("ARM_1-1") == (1.0, 0.0, 0.0, 1.0)


def test_assigned_inertias():
    config = ConversionConfig({"assignedInertias": [{"linkName": "forearm", "xx": 0.1, "yy": 0.2, "zz": 0.3}]})
    assert config.assigned_inertias == {"forearm": (0.1, 0.2, 0.3)}


def test_assigned_inertias_malformed():
    with pytest.raises(ConfigurationError):
        ConversionConfig({"assignedInertias": [{"linkName": "forearm", "xx": 0.1}]})


def test_assigned_collision_geometry():
    """Test each primitive is read with its own fields and placement."""
    config = ConversionConfig({"assignedCollisionGeometry": [
        {"linkName": "base", "geometricShape": {"shape": "box", "size": [0.1, 0.2, 0.3], "origin": [0, 0, 0.1, 0, 0, 0]}},
        {"linkName": "arm", "geometricShape": {"shape": "cylinder", "radius": 0.05, "length": 0.4, "origin": [0, 0, 0, 0, 0, 0]}},
        {"linkName": "old", "geometricShape": {"shape": "cylinder", "radius": 0.05, "lenght": 0.3, "origin": [0, 0, 0, 0, 0, 0]}},
        {"linkName": "hand", "geometricShape": {"shape": "sphere", "radius": 0.02, "origin": [0.01, 0, 0, 0, 0, 1.57]}},
    ]})
    shapes = config.assigned_collision_geometry

    assert isinstance(shapes["base"], Box)
    np.testing.assert_allclose(shapes["base"].size, jnp.array([0.1, 0.2, 0.3]))
    np.testing.assert_allclose(se3.get_position(shapes["base"].link_H_geometry), jnp.array([0.0, 0.0, 0.1]))

    assert isinstance(shapes["arm"], Cylinder)
    assert shapes["arm"].radius == 0.05
    assert shapes["arm"].length == 0.4
    assert shapes["old"].length == 0.3

    assert isinstance(shapes["hand"], Sphere)
    assert shapes["hand"].radius == 0.02
    np.testing.assert_allclose(
        shapes["hand"].link_H_geometry,
        se3.from_xyz_rpy([0.01, 0, 0], [0, 0, 1.57]),
        rtol=1e-12, atol=1e-12,
    )


def test_unknown_collision_shape_is_fatal():
    with pytest.raises(ConfigurationError):
        ConversionConfig({"assignedCollisionGeometry": [
            {"linkName": "base", "geometricShape": {"shape": "capsule", "radius": 1, "origin": [0, 0, 0, 0, 0, 0]}},
        ]})


def test_exported_frames():
    config = ConversionConfig({"exportedFrames": [
        {"frameName": "SCSYS_HAND", "frameReferenceLink": "hand", "exportedFrameName": "hand_frame"},
        {"frameName": "SCSYS_TOOL", "frameReferenceLink": "hand", "exportedFrameName": "tool_frame",
         "additionalTransformation": [0, 0, 0.1, 0, 0, 3.14159]},
    ]})
    hand = config.exported_frames["SCSYS_HAND"]
    tool = config.exported_frames["SCSYS_TOOL"]

    assert hand.reference_link == "hand"
    assert hand.exported_name == "hand_frame"
    assert hand.additional_transform is None
    np.testing.assert_allclose(
        tool.additional_transform, se3.from_xyz_rpy([0, 0, 0.1], [0, 0, 3.14159]), rtol=1e-12, atol=1e-12
    )


def test_reverse_rotation_axis_string_and_list():
    """Test the reversal set accepts a substring-searched string or a list."""
    as_string = ConversionConfig({"reverseRotationAxis": "ARM_1-1--ARM_2-1 ARM_2-1--ARM_3-1"})
    assert as_string.is_rotation_axis_reversed("ARM_1-1--ARM_2-1")
    assert as_string.is_rotation_axis_reversed("ARM_2-1--ARM_3-1")
    assert not as_string.is_rotation_axis_reversed("ARM_3-1--ARM_4-1")

    as_list = ConversionConfig({"reverseRotationAxis": ["ARM_1-1--ARM_2-1"]})
    assert as_list.is_rotation_axis_reversed("ARM_1-1--ARM_2-1")
    assert not as_list.is_rotation_axis_reversed("ARM_1-1")


def test_required_export_keys():
    """Test robot name and base link are required only when asked for."""
    config = ConversionConfig({})
    with pytest.raises(ConfigurationError):
        config.robot_name()
    with pytest.raises(ConfigurationError):
        config.base_link()


def test_base_link_falls_back_to_rename_entry():
    config = ConversionConfig({"rename": {"SIM_ECUB_1-1_ROOT_LINK": "root_link"}})
    assert config.base_link() == "root_link"

    config = ConversionConfig({"root": "base", "rename": {"SIM_ECUB_1-1_ROOT_LINK": "root_link"}})
    assert config.base_link() == "base"


def test_load_config(write_config):
    config = load_config(write_config(assignedMasses={"ARM_1-1": 2.5}))

    assert config.robot_name() == "arm"
    assert config.base_link() == "base_link"
    assert config.scale == (0.001, 0.001, 0.001)
    assert config.assigned_mass("ARM_1-1") == 2.5


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        load_config(tmp_path / "missing.yaml")


def test_load_config_malformed(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("rename: {ARM_1-1: [unclosed\n")
    with pytest.raises(ConfigurationError, match="malformed"):
        load_config(path)


def test_load_config_not_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        load_config(path)
