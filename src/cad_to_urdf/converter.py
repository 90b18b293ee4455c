"""End-to-end conversion of a CAD assembly into a URDF model.

``convert`` runs one complete conversion: it loads the configuration and
the joint-limits table, traverses the assembly building one link per
component, connects the links with the discovered joints, attaches
auxiliary frames and writes the model. Every failure is reported through
the log and the run returns an unsuccessful result; no state is kept
between runs.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from cad_to_urdf.config import ConversionConfig, load_config
from cad_to_urdf.core.model import Link, RobotModel
from cad_to_urdf.errors import ConversionError, ExportError, ResolutionError
from cad_to_urdf.host import Assembly, Component, ComponentPath
from cad_to_urdf.inertia import build_inertia, is_physically_consistent
from cad_to_urdf.io.joint_limits import load_joint_limits
from cad_to_urdf.io.urdf_writer import ExportOptions, export_model
from cad_to_urdf.joints import build_joints, discover_joints
from cad_to_urdf.meshes import export_link_mesh
from cad_to_urdf.projector import (
    attach_exported_frames,
    attach_ft_sensors,
    attach_sensors,
    discover_exported_frames,
)
from cad_to_urdf.resolver import resolve_child_in_root
from cad_to_urdf.sensors import SensorSet, build_ft_xml_blobs, build_sensor_xml_blobs
from cad_to_urdf.session import ConversionSession, LinkInfo

logger = logging.getLogger(__name__)

URDF_FILENAME = "model.urdf"
MODEL_DUMP_FILENAME = "model.txt"
ERROR_LOG_FILENAME = "conversion_errors.txt"


@dataclass
class ConversionResult:
    success: bool
    urdf_path: Optional[Path] = None
    model: Optional[RobotModel] = None
    message: str = ""


def convert(
    assembly: Assembly,
    config_path: Union[str, Path],
    limits_path: Union[str, Path],
    output_dir: Union[str, Path],
    sensors: Optional[SensorSet] = None,
) -> ConversionResult:
    """Convert ``assembly`` into ``output_dir/model.urdf``.

    Args:
        assembly: CAD assembly to convert.
        config_path: YAML configuration document.
        limits_path: CSV table of joint limits and dynamics.
        output_dir: Directory receiving the URDF, the meshes, the model dump
            and the error log.
        sensors: Pre-resolved sensors to attach and describe.

    Returns:
        ConversionResult; ``success`` is False if the run was aborted.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    # WARNING-and-above records of this run are mirrored to the error log
    package_logger = logging.getLogger("cad_to_urdf")
    error_log = logging.FileHandler(output_dir / ERROR_LOG_FILENAME, mode="w", encoding="utf-8")
    error_log.setLevel(logging.WARNING)
    error_log.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))
    package_logger.addHandler(error_log)
    try:
        model = _run(assembly, config_path, limits_path, output_dir, sensors or SensorSet())
    except ConversionError as e:
        logger.warning(str(e))
        logger.warning("Failed to run the conversion!")
        return ConversionResult(success=False, message=str(e))
    finally:
        package_logger.removeHandler(error_log)
        error_log.close()

    logger.info("Urdf created successfully!")
    return ConversionResult(success=True, urdf_path=output_dir / URDF_FILENAME, model=model)


def _run(
    assembly: Assembly,
    config_path: Union[str, Path],
    limits_path: Union[str, Path],
    output_dir: Path,
    sensors: SensorSet,
) -> RobotModel:
    config = load_config(config_path)
    options = ExportOptions(robot_name=config.robot_name(), base_link=config.base_link())
    limits = load_joint_limits(limits_path)

    features = assembly.list_features()
    if not features:
        raise ConversionError("There are no FEATURES in the asm")

    session = ConversionSession.start(config)

    for feature in features:
        if not feature.is_component:
            continue
        component = assembly.retrieve_component(feature)
        if component is None:
            raise ResolutionError(f"Unable to retrieve the component of feature {feature.id}")
        add_component_link(session, assembly, (feature.id,), component, output_dir)

    build_joints(session, limits)

    attach_sensors(session.model, sensors.sensors)
    attach_ft_sensors(session.model, sensors.ft_sensors)
    attach_exported_frames(
        session.model, session.exported_frames, session.joint_candidates.consumed_fixed_frames()
    )

    dump_path = output_dir / MODEL_DUMP_FILENAME
    try:
        with open(dump_path, "w", encoding="utf-8") as f:
            f.write(session.model.to_string())
    except OSError as e:
        raise ExportError(f"Unable to write {dump_path}: {e}")

    options.xml_blobs = collect_xml_blobs(config, sensors)
    export_model(session.model, options, output_dir / URDF_FILENAME)
    return session.model


def add_component_link(
    session: ConversionSession,
    assembly: Assembly,
    path: ComponentPath,
    component: Component,
    output_dir: Path,
) -> Optional[LinkInfo]:
    """Build the link of one traversed component and record its joints and frames.

    Returns:
        The new LinkInfo, or None if a component with the same name was
        already converted.

    Raises:
        ResolutionError: If the link frame cannot be resolved.
    """
    config = session.config
    cad_name = component.name
    if cad_name in session.links:
        logger.warning(f"{cad_name} appears more than once in the assembly, skipping the repetition")
        return None

    link_name = config.rename(cad_name)
    frame_name = config.link_frame(link_name)

    root_H_link = resolve_child_in_root(assembly, path, component, frame_name, config.scale)
    if not root_H_link.ok:
        raise ResolutionError(root_H_link.detail)

    inertia = build_inertia(component.mass_property(), root_H_link.pose, link_name, config)
    if not is_physically_consistent(inertia):
        logger.warning(f"{cad_name} is NOT physically consistent!")

    info = LinkInfo(
        cad_name=cad_name,
        name=link_name,
        component=component,
        root_H_link=root_H_link.pose,
        frame_name=frame_name,
    )
    session.links[cad_name] = info
    discover_joints(component, cad_name, session.joint_candidates)
    discover_exported_frames(session, component, info)

    session.model.add_link(Link(name=link_name, inertia=inertia, root_H_link=root_H_link.pose, frame_name=frame_name))
    export_link_mesh(component, link_name, frame_name, config, session.model, output_dir)
    return info


def collect_xml_blobs(config: ConversionConfig, sensors: SensorSet) -> List[str]:
    """Markup appended to the URDF: configured blobs, gazebo pose, then sensors.

    The gazebo pose blob is only added when ``XMLBlobs`` is configured.
    """
    blobs: List[str] = []
    configured = config.xml_blobs
    if configured is not None:
        blobs.extend(configured)
        pose = " ".join(f"{v:f}" for v in (*config.origin_xyz, *config.origin_rpy))
        blobs.append(f"<gazebo><pose>{pose}</pose></gazebo>")
    blobs.extend(build_ft_xml_blobs(sensors.ft_sensors))
    blobs.extend(build_sensor_xml_blobs(sensors.sensors))
    return blobs

