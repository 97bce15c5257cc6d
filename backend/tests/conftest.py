"""
Pytest configuration and shared fixtures.

This module provides common fixtures for all test modules, including a
complete on-disk run configuration (YAML, sensor file, unit stress files
and load case time series) written to a temporary directory.
"""
import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import numpy as np
import pytest
import yaml

from fatigue.core.damage_accumulation import DamageModel, LoadCase, SafetyFactors
from fatigue.core.interpolation import InterpolationPoint
from fatigue.core.sn_curve import SNCurve


# Material fixtures
@pytest.fixture
def sn_curve() -> SNCurve:
    """S-N curve with knee 5e6 cycles at 52 MPa, cutoffs 440 / 1 MPa."""
    return SNCurve(m1=3.0, m2=5.0, knee_cycle=5e6, knee_stress=52.0,
                   cutoff_max=440.0, cutoff_min=1.0)


@pytest.fixture
def damage_model(sn_curve) -> DamageModel:
    """Damage model without mean stress correction or safety factors."""
    return DamageModel(sn_curve)


@pytest.fixture
def load_case() -> LoadCase:
    """Load case with unit occurrence and unit safety factors."""
    return LoadCase(id="lc1", fam=1, file="lc1.csv", frequency=1.0)


@pytest.fixture
def safety_factors() -> SafetyFactors:
    return SafetyFactors(gmre=1.0, gmrm=1.0, gmfat=1.35)


# Interpolation fixtures
@pytest.fixture
def unit_points() -> List[InterpolationPoint]:
    """Three unit-axis points with (4 nodes x 6) tensor responses."""
    rng = np.random.default_rng(42)
    return [
        InterpolationPoint(tuple(np.eye(3)[i]), rng.normal(size=(4, 6)), label=f"unit{i}")
        for i in range(3)
    ]


# Time series fixtures
@pytest.fixture
def sample_time_series() -> List[float]:
    """Irregular stress history."""
    return [0, 10, -5, 8, -3, 7, -2, 5, 0, 12, -8, 10, -6, 8]


@pytest.fixture
def astm_series() -> List[float]:
    """Turning point sequence of the ASTM E1049 rainflow example."""
    return [-2, 1, -3, 5, -1, 3, -4, 4, -2]


# Expression fixtures
@pytest.fixture
def expression_parameters() -> Dict[str, float]:
    return {"a": 5, "b": 3}


@pytest.fixture
def expression_variables() -> Dict[str, str]:
    return {
        "max_value": "max(a, b)",
        "sin_of_a": "math::sin(a)",
        "cos_of_b": "math::cos(b)",
        "a_plus_b": "a + b",
        "a_minus_b": "a - b",
        "product": "a * b",
        "average": "(a + b) / 2",
        "sin_plus_cos": "sin_of_a + cos_of_b",
        "max_plus_product": "max_value + product",
        "final_expression": "average + sin_plus_cos + max_plus_product",
    }


@pytest.fixture
def expression_order() -> List[str]:
    return [
        "max_value", "sin_of_a", "cos_of_b", "a_plus_b", "a_minus_b",
        "product", "average", "sin_plus_cos", "max_plus_product", "final_expression",
    ]


# On-disk run configuration
UNIT_STRESS = {
    # node: sxx syy szz sxy syz szx
    "FX.usf": {100: [10.0, 0.0, 0.0, 0.0, 0.0, 0.0], 101: [5.0, 0.0, 0.0, 0.0, 0.0, 0.0]},
    "FY.usf": {100: [2.0, 0.0, 0.0, 1.0, 0.0, 0.0], 101: [1.0, 0.0, 0.0, 0.0, 0.0, 0.0]},
    "FZ.usf": {100: [0.0, 3.0, 0.0, 0.0, 0.0, 0.0], 101: [0.0, 0.0, 0.0, 0.0, 0.0, 0.0]},
}

SERIES = {
    # time, Fx, Fy, Fz
    "lc1.csv": [(0, 0, 0, 0), (1, 10, 0, 0), (2, 0, 0, 0), (3, 10, 0, 0), (4, 0, 0, 0)],
    "lc2.csv": [(0, 0, 0, 0), (1, 0, 20, 1), (2, 0, -20, 2), (3, 0, 0, 0)],
    "lc3.csv": [(0, 0, 0, 0), (1, 12, 5, 0), (2, -4, 0, 0), (3, 8, -5, 0), (4, 2, 0, 0), (5, 20, 0, 0), (6, 0, 0, 0)],
}


def write_unit_stress(path: Path, rows: Dict[int, List[float]]) -> None:
    lines = ["node sxx syy szz sxy syz szx"]
    lines += [" ".join(str(v) for v in [node] + values) for node, values in rows.items()]
    path.write_text("\n".join(lines) + "\n")


def write_series(path: Path, rows, columns=("time", "Fx", "Fy", "Fz")) -> None:
    lines = [",".join(columns)] + [",".join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")


@pytest.fixture
def config_dict() -> Dict[str, Any]:
    """Run configuration mapping matching the files of ``write_config``."""
    return {
        "solution": {
            "run_type": "FAT",
            "mode": "STRESS",
            "output": "JSON",
            "stress_criteria": {"method": "NONE"},
            "mean": {"mean": "NONE", "postfix": "NONE", "number": 0},
            "node": {"from": 100, "to": 101, "path": "NONE"},
            "damage": {"error": 0.01, "dadm": 1.0},
        },
        "material": {
            "name": "Steel",
            "youngs_modulus": 210000.0,
            "poissons_ratio": 0.3,
            "yield_stress": 355.0,
            "ultimate_stress": 510.0,
            "fatigue": {
                "slope": {"m1": 3, "m2": 5},
                "knee": {"cycle": 5000000, "stress": 52.0},
                "cutoff": {"max": 440, "min": 1},
            },
        },
        "safety_factor": {"gmre": 1.0, "gmrm": 1.0, "gmfat": 1.0},
        "timeseries": {
            "path": "timeseries",
            "sensorfile": "timeseries/sensors.json",
            "interpolations": [{
                "name": "StressTimeseries",
                "method": "LINEAR",
                "path": "stressfile",
                "parse_config": {"header": 1, "delimiter": " "},
                "scale": 1.0,
                "dimension": 3,
                "sensor": ["Fx", "Fy", "Fz"],
                "points": [
                    {"file": "FX.usf", "coordinates": [1.0, 0.0, 0.0]},
                    {"file": "FY.usf", "coordinates": [0.0, 1.0, 0.0]},
                    {"file": "FZ.usf", "coordinates": [0.0, 0.0, 1.0]},
                ],
            }],
            "loadcases": [
                {"fam": 1, "file": "lc1.csv", "frequency": 1000.0, "gf_ext": 1.0, "gf_fat": 1.0},
                {"fam": 2, "file": "lc2.csv", "frequency": 500.0, "gf_ext": 1.0, "gf_fat": 1.0},
                {"fam": 1, "file": "lc3.csv", "frequency": 250.0, "gf_ext": 1.35, "gf_fat": 1.0},
            ],
            "parameters": {"a": 5, "b": 3},
            "variables": {"a_plus_b": "a + b", "twice": "2 * a_plus_b"},
            "expressions": {"order": ["a_plus_b", "twice"]},
        },
    }


@pytest.fixture
def write_config(tmp_path) -> Callable[..., Path]:
    """
    Write a complete run directory and return the YAML path.

    Usage:
        path = write_config(config_dict)
    """
    def _write(config: Dict[str, Any], name: str = "config.yaml") -> Path:
        stress_dir = tmp_path / "stressfile"
        series_dir = tmp_path / "timeseries"
        stress_dir.mkdir(exist_ok=True)
        series_dir.mkdir(exist_ok=True)

        for filename, rows in UNIT_STRESS.items():
            write_unit_stress(stress_dir / filename, rows)
        for filename, rows in SERIES.items():
            write_series(series_dir / filename, rows)

        sensors = [
            {"no": 2, "name": "Fx", "correction": 1.0, "unit": "kN", "description": "Force x"},
            {"no": 3, "name": "Fy", "correction": 1.0, "unit": "kN", "description": "Force y"},
            {"no": 4, "name": "Fz", "correction": 1.0, "unit": "kN", "description": "Force z"},
        ]
        (series_dir / "sensors.json").write_text(json.dumps(sensors))

        path = tmp_path / name
        path.write_text(yaml.safe_dump(config, sort_keys=False))
        return path

    return _write


@pytest.fixture
def config_path(write_config, config_dict) -> Path:
    return write_config(config_dict)
