"""Sensor records and their URDF markup.

Sensors are resolved by a dedicated subsystem and handed to the converter
already placed: a plain sensor carries its pose in the frame of the link it
is mounted on, a force/torque sensor its pose in the parent link of the
joint it measures. They are written as ``<sensor>`` fragments appended to
the URDF document.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from jax import Array
from lxml import etree

from cad_to_urdf.io.urdf_writer import format_vector, origin_element


@dataclass
class Sensor:
    name: str
    link_name: str
    sensor_type: str
    exported_frame_name: str
    link_H_sensor: Array
    export_frame: bool = True
    update_rate: Optional[float] = None


@dataclass
class FTSensor:
    """Six-axis force/torque sensor mounted on a joint.

    Attributes:
        frame: Frame the wrench is expressed in ('child', 'parent' or 'sensor').
        direction: 'child_to_parent' or 'parent_to_child'.
    """

    name: str
    joint_name: str
    exported_frame_name: str
    parent_link_H_sensor: Array
    export_frame: bool = True
    frame: str = "child"
    direction: str = "child_to_parent"


@dataclass
class SensorSet:
    sensors: List[Sensor] = field(default_factory=list)
    ft_sensors: List[FTSensor] = field(default_factory=list)


def build_sensor_xml_blobs(sensors: List[Sensor]) -> List[str]:
    """One ``<sensor>`` fragment per sensor, attached to its link."""
    blobs = []
    for sensor in sensors:
        element = etree.Element("sensor", name=sensor.name, type=sensor.sensor_type)
        etree.SubElement(element, "parent", link=sensor.link_name)
        origin_element(element, sensor.link_H_sensor)
        if sensor.update_rate is not None:
            etree.SubElement(element, "update_rate").text = format_vector([sensor.update_rate])
        blobs.append(etree.tostring(element, encoding="unicode"))
    return blobs


def build_ft_xml_blobs(ft_sensors: List[FTSensor]) -> List[str]:
    """One ``<sensor type="force_torque">`` fragment per FT sensor, attached to its joint."""
    blobs = []
    for ft_sensor in ft_sensors:
        element = etree.Element("sensor", name=ft_sensor.name, type="force_torque")
        etree.SubElement(element, "parent", joint=ft_sensor.joint_name)
        force_torque = etree.SubElement(element, "force_torque")
        etree.SubElement(force_torque, "frame").text = ft_sensor.frame
        etree.SubElement(force_torque, "measure_direction").text = ft_sensor.direction
        origin_element(element, ft_sensor.parent_link_H_sensor)
        blobs.append(etree.tostring(element, encoding="unicode"))
    return blobs
