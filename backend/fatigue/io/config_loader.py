"""
Loading and validation of the YAML run configuration.
"""
from pathlib import Path
from typing import Any, Dict, Union
import logging

import yaml
from pydantic import ValidationError

from fatigue.core.errors import ConfigurationError
from fatigue.io.readers import read_sensor_file
from fatigue.schemas.config import FatigueConfig


logger = logging.getLogger(__name__)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


def parse_config(data: Dict[str, Any], base_dir: Union[str, Path] = ".") -> FatigueConfig:
    """
    Validate a configuration mapping.

    Raises:
        ConfigurationError: If the mapping does not describe a valid run
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")
    try:
        config = FatigueConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {_format_validation_error(e)}")
    return config.model_copy(update={"base_dir": Path(base_dir)})


def check_inputs(config: FatigueConfig) -> None:
    """
    Check that every referenced file and sensor exists.

    Raises:
        ConfigurationError: On the first missing file or unknown sensor
    """
    ts = config.timeseries
    sensors = read_sensor_file(config.resolve(ts.sensorfile))

    for interp in ts.interpolations:
        unknown = [name for name in interp.sensor if name not in sensors]
        if unknown:
            raise ConfigurationError(
                f"Interpolation '{interp.name}' uses sensors not in the sensor file: "
                f"{', '.join(unknown)}"
            )
        for point in interp.points:
            path = config.resolve(interp.path, point.file)
            if not path.exists():
                raise ConfigurationError(f"Unit stress file does not exist: {path}")

    for lc in ts.loadcases:
        path = config.resolve(ts.path, lc.file)
        if not path.exists():
            raise ConfigurationError(f"Load case file does not exist: {path}")


def load_config(path: Union[str, Path], check_files: bool = True) -> FatigueConfig:
    """
    Load a run configuration from YAML.

    Relative paths inside the file are resolved against the directory of
    the configuration file.

    Args:
        path: YAML file
        check_files: Also verify referenced files and sensors

    Returns:
        Validated FatigueConfig

    Raises:
        ConfigurationError: If the file is missing, not valid YAML or not a
            valid configuration
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file does not exist: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Configuration file {path} is not valid YAML: {e}")

    config = parse_config(data, base_dir=path.resolve().parent)
    if check_files:
        check_inputs(config)
    logger.info(
        f"Loaded configuration {path.name}: {len(config.timeseries.loadcases)} load cases, "
        f"nodes {config.solution.node.from_}-{config.solution.node.to}"
    )
    return config
