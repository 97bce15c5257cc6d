"""
Configuration loading and file readers.
"""
from fatigue.io.config_loader import load_config, parse_config
from fatigue.io.readers import (
    Sensor,
    read_sensor_file,
    read_time_series,
    read_unit_stress_file,
)

__all__ = [
    "load_config",
    "parse_config",
    "Sensor",
    "read_sensor_file",
    "read_time_series",
    "read_unit_stress_file",
]
