"""Joint limits and dynamics read from a CSV table.

The first row holds column names and the first column holds joint names.
Required columns are ``lower_limit`` and ``upper_limit`` (degrees),
``damping`` and ``friction``; ``max_effort`` and ``max_velocity`` are
optional.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from cad_to_urdf.errors import JointLimitsError

REQUIRED_COLUMNS = ("lower_limit", "upper_limit", "damping", "friction")

DEFAULT_MAX_EFFORT = 1e4
DEFAULT_MAX_VELOCITY = 1e4


@dataclass(frozen=True)
class JointLimitsRow:
    lower_deg: float
    upper_deg: float
    damping: float
    friction: float
    max_effort: float = DEFAULT_MAX_EFFORT
    max_velocity: float = DEFAULT_MAX_VELOCITY


class JointLimitsTable:
    """Rows of joint data keyed by final joint name."""

    def __init__(self, rows: Dict[str, JointLimitsRow]):
        self.rows = dict(rows)

    def lookup(self, joint_name: str) -> JointLimitsRow:
        """Row for ``joint_name``.

        Raises:
            JointLimitsError: If the table has no such row.
        """
        try:
            return self.rows[joint_name]
        except KeyError:
            raise JointLimitsError(f"Joint {joint_name} has no row in the joint limits table")


def load_joint_limits(csv_path: Union[str, Path]) -> JointLimitsTable:
    """Load a joint limits table from a CSV file.

    Raises:
        JointLimitsError: If the file is missing, lacks required columns or
            holds non-numeric values.
    """
    rows: Dict[str, JointLimitsRow] = {}
    try:
        with open(csv_path, "r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            if reader.fieldnames is None:
                raise JointLimitsError(f"CSV has no header: {csv_path}")
            fieldnames = [name.strip() for name in reader.fieldnames]
            reader.fieldnames = fieldnames
            missing = [column for column in REQUIRED_COLUMNS if column not in fieldnames]
            if missing:
                raise JointLimitsError(f"CSV {csv_path} is missing columns {missing}. Found: {fieldnames}")

            label_column = fieldnames[0]
            for row in reader:
                name = (row[label_column] or "").strip()
                if not name:
                    continue
                rows[name] = _parse_row(name, row)
    except OSError as e:
        raise JointLimitsError(f"Unable to read joint limits table {csv_path}: {e}")

    return JointLimitsTable(rows)


def _parse_row(name: str, row: Dict[str, str]) -> JointLimitsRow:
    try:
        return JointLimitsRow(
            lower_deg=float(row["lower_limit"]),
            upper_deg=float(row["upper_limit"]),
            damping=float(row["damping"]),
            friction=float(row["friction"]),
            max_effort=float(row["max_effort"]) if row.get("max_effort") else DEFAULT_MAX_EFFORT,
            max_velocity=float(row["max_velocity"]) if row.get("max_velocity") else DEFAULT_MAX_VELOCITY,
        )
    except (TypeError, ValueError):
        raise JointLimitsError(f"Non-numeric value in joint limits row {name}: {row}")
