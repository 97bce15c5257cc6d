"""
Readers for sensor definitions, unit stress files and load time series.

Time series are streamed: ``read_time_series`` is a generator that holds
one line at a time, so load cases of any length can be processed.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union
import csv
import json
import logging
import math

import numpy as np

from fatigue.core.errors import ConfigurationError, DataError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Sensor:
    """A measured load channel.

    Attributes:
        no: 1-based column of the channel in files without a header
        name: Channel name
        correction: Multiplicative correction applied to raw values
        unit: Physical unit
        description: Free text
    """
    no: int
    name: str
    correction: float = 1.0
    unit: str = ""
    description: str = ""


def read_sensor_file(path: PathLike) -> Dict[str, Sensor]:
    """
    Read the JSON sensor list.

    Returns:
        Sensors keyed by name, in file order

    Raises:
        ConfigurationError: If the file is missing, not valid JSON or
            contains invalid entries
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            entries = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Sensor file does not exist: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Sensor file {path} is not valid JSON: {e}")

    if not isinstance(entries, list):
        raise ConfigurationError(f"Sensor file {path} must contain a list of sensors")

    sensors: Dict[str, Sensor] = {}
    for idx, entry in enumerate(entries):
        try:
            sensor = Sensor(
                no=int(entry["no"]),
                name=str(entry["name"]),
                correction=float(entry.get("correction", 1.0)),
                unit=str(entry.get("unit", "")),
                description=str(entry.get("description", "")),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid sensor entry {idx} in {path}: {e}")
        if sensor.name in sensors:
            raise ConfigurationError(f"Duplicate sensor '{sensor.name}' in {path}")
        if not math.isfinite(sensor.correction):
            raise ConfigurationError(f"Sensor '{sensor.name}' has a non-finite correction")
        sensors[sensor.name] = sensor

    logger.debug(f"Read {len(sensors)} sensors from {path}")
    return sensors


def _split(line: str, delimiter: str) -> List[str]:
    if delimiter.isspace():
        return line.split()
    return [field.strip() for field in next(csv.reader([line], delimiter=delimiter))]


def read_unit_stress_file(
    path: PathLike,
    header: int = 1,
    delimiter: str = " ",
    nodes: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """
    Read a unit stress file.

    Each data line holds ``node sxx syy szz sxy syz szx``.

    Args:
        path: File path
        header: Number of header lines to skip
        delimiter: Field delimiter (any whitespace when blank)
        nodes: Node ids to return, in this order (default: all, file order)

    Returns:
        Array (n_nodes, 6)

    Raises:
        ConfigurationError: If the file cannot be read or a node is missing
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Unit stress file does not exist: {path}")
    try:
        table = np.loadtxt(
            path,
            skiprows=header,
            delimiter=None if delimiter.isspace() else delimiter,
            ndmin=2,
        )
    except ValueError as e:
        raise ConfigurationError(f"Cannot parse unit stress file {path}: {e}")

    if table.size == 0:
        raise ConfigurationError(f"Unit stress file {path} contains no data")
    if table.shape[1] != 7:
        raise ConfigurationError(
            f"Unit stress file {path} has {table.shape[1]} columns, "
            f"expected 7 (node sxx syy szz sxy syz szx)"
        )

    ids = table[:, 0].astype(int)
    if nodes is None:
        return table[:, 1:].copy()

    rows = {int(node): idx for idx, node in enumerate(ids)}
    missing = [n for n in nodes if n not in rows]
    if missing:
        raise ConfigurationError(
            f"Unit stress file {path} has no data for nodes {missing[:5]}"
            + (" ..." if len(missing) > 5 else "")
        )
    return table[[rows[n] for n in nodes], 1:].copy()


def read_time_series(
    path: PathLike,
    channels: Sequence[str],
    sensors: Mapping[str, Sensor],
    header: int = 1,
    delimiter: str = ",",
) -> Iterator[Dict[str, float]]:
    """
    Stream corrected samples of a load time series.

    With ``header > 0`` the last header line names the columns and channels
    are located by name; without a header the sensor's ``no`` gives the
    (1-based) column.

    Yields:
        ``{channel: raw value · correction}`` per data line

    Raises:
        ConfigurationError: If the file does not exist
        DataError: If a channel column is missing or a value is not numeric
    """
    path = Path(path)
    for name in channels:
        if name not in sensors:
            raise ConfigurationError(f"Sensor '{name}' is not defined in the sensor file")
    if not path.exists():
        raise ConfigurationError(f"Load case file does not exist: {path}")

    with open(path, "r", encoding="utf-8", newline="") as f:
        columns: Dict[str, int] = {}
        if header > 0:
            names: List[str] = []
            for _ in range(header):
                names = _split(f.readline(), delimiter)
            for name in channels:
                if name not in names:
                    raise DataError(
                        f"Column '{name}' not found in {path.name}",
                        context={"file": str(path)},
                    )
                columns[name] = names.index(name)
        else:
            columns = {name: sensors[name].no - 1 for name in channels}

        corrections = {name: sensors[name].correction for name in channels}
        width = max(columns.values()) + 1

        for line_no, line in enumerate(f, start=header + 1):
            if not line.strip():
                continue
            fields = _split(line, delimiter)
            if len(fields) < width:
                raise DataError(
                    f"Line {line_no} of {path.name} has {len(fields)} fields, "
                    f"expected at least {width}",
                    context={"file": str(path), "line": line_no},
                )
            try:
                yield {
                    name: float(fields[col]) * corrections[name]
                    for name, col in columns.items()
                }
            except ValueError:
                raise DataError(
                    f"Non-numeric value on line {line_no} of {path.name}",
                    context={"file": str(path), "line": line_no},
                )
