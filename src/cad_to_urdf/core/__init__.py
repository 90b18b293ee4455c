"""Core robot model data structures.

This module provides the link, joint, shape and frame types produced by a
conversion run, and the ``RobotModel`` tree that owns them.
"""

from .model import (
    AdditionalFrame,
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

__all__ = [
    "AdditionalFrame",
    "Box",
    "Cylinder",
    "ExternalMesh",
    "Joint",
    "JointDynamics",
    "JointLimits",
    "JointType",
    "Link",
    "RobotModel",
    "Shape",
    "SpatialInertia",
    "Sphere",
]
