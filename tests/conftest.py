"""Shared fixtures: a three-part arm assembly, its configuration and limits table."""

import numpy as np
import pytest
import yaml

from cad_to_urdf.host import MassProperty, StaticAssembly, StaticComponent
from cad_to_urdf.transforms import se3


def pose(xyz, rpy=(0.0, 0.0, 0.0)) -> np.ndarray:
    return np.asarray(se3.from_xyz_rpy(xyz, rpy))


BASE_CONFIG = {
    "robotName": "arm",
    "root": "base_link",
    "scale": [0.001, 0.001, 0.001],
    "rename": {
        "BASE_1-1": "base_link",
        "BASE_1-1--ARM_1-1": "base_fixed_joint",
    },
}

LIMITS_CSV = (
    "joint,lower_limit,upper_limit,damping,friction\n"
    "ARM_1-1--ARM_2-1,-90,45,0.1,0.2\n"
)


ARM_ORDER = ("BASE_1-1", "ARM_1-1", "ARM_2-1")


def make_arm_assembly(order=ARM_ORDER) -> StaticAssembly:
    """BASE_1-1 -(fixed)- ARM_1-1 -(revolute AXIS_J1)- ARM_2-1, lengths in mm.

    ARM_2-1 sits 200 mm along x from ARM_1-1, rotated 90 degrees about z.
    XSCSYS_TOOL exists on ARM_2-1 only. Components are added in ``order``,
    after a non-component feature.
    """
    base = StaticComponent(
        name="BASE_1-1",
        mass=MassProperty(
            mass=5.0,
            center_of_gravity=np.array([0.0, 0.0, 50.0]),
            inertia_tensor=np.diag([1e5, 1e5, 1e5]),
        ),
        coordinate_systems={
            "CSYS": np.eye(4),
            "SCSYS_BASE_ARM": pose([0.0, 0.0, 100.0]),
        },
    )
    arm_1 = StaticComponent(
        name="ARM_1-1",
        mass=MassProperty(
            mass=3.1,
            center_of_gravity=np.array([100.0, 0.0, 100.0]),
            inertia_tensor=np.array([
                [2e4, 1e3, 0.0],
                [1e3, 3e4, 0.0],
                [0.0, 0.0, 3e4],
            ]),
        ),
        coordinate_systems={
            "CSYS": np.eye(4),
            "SCSYS_BASE_ARM": np.eye(4),
        },
        axes={"AXIS_J1": np.array([0.0, 0.0, 1.0])},
    )
    arm_2 = StaticComponent(
        name="ARM_2-1",
        mass=MassProperty(
            mass=1.0,
            center_of_gravity=np.array([250.0, 0.0, 100.0]),
            inertia_tensor=np.diag([1e4, 1e4, 1e4]),
        ),
        coordinate_systems={
            "CSYS": np.eye(4),
            "XSCSYS_TOOL": pose([50.0, 0.0, 0.0]),
        },
        axes={"AXIS_J1": np.array([0.0, 0.0, 1.0])},
    )

    placements = {
        "BASE_1-1": (base, np.eye(4)),
        "ARM_1-1": (arm_1, pose([0.0, 0.0, 100.0])),
        "ARM_2-1": (arm_2, pose([200.0, 0.0, 100.0], [0.0, 0.0, np.pi / 2])),
    }

    assembly = StaticAssembly()
    assembly.add_feature()
    for name in order:
        assembly.add_component(*placements[name])
    return assembly


@pytest.fixture
def arm_assembly() -> StaticAssembly:
    return make_arm_assembly()


@pytest.fixture
def arm_assembly_in_order():
    """Build the arm assembly with its components listed in a given order."""
    return make_arm_assembly


@pytest.fixture
def write_config(tmp_path):
    """Write BASE_CONFIG updated with the given keys; return the file path."""
    def _write(**overrides):
        data = dict(BASE_CONFIG)
        data.update(overrides)
        path = tmp_path / "config.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(data, f)
        return path
    return _write


@pytest.fixture
def limits_csv(tmp_path):
    path = tmp_path / "limits.csv"
    path.write_text(LIMITS_CSV)
    return path
