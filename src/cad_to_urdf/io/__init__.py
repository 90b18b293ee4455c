"""I/O utilities for robot description files and tabular joint data.

This module provides URDF serialization and parsing, and the CSV reader
for joint limits and dynamics.
"""

from .joint_limits import JointLimitsTable, load_joint_limits
from .urdf_parser import load_urdf
from .urdf_writer import ExportOptions, export_model, model_to_urdf

__all__ = [
    "ExportOptions",
    "JointLimitsTable",
    "export_model",
    "load_joint_limits",
    "load_urdf",
    "model_to_urdf",
]
