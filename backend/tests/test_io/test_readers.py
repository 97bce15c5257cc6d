"""
Unit tests for the sensor, unit stress and time series readers.
"""
import json

import pytest
from numpy.testing import assert_allclose

from fatigue.core.errors import ConfigurationError, DataError
from fatigue.io.readers import (
    Sensor,
    read_sensor_file,
    read_time_series,
    read_unit_stress_file,
)


@pytest.fixture
def sensors():
    return {
        "Fx": Sensor(no=2, name="Fx"),
        "Fy": Sensor(no=3, name="Fy", correction=2.0),
    }


class TestSensorFile:

    def test_read_sensors(self, tmp_path):
        path = tmp_path / "sensors.json"
        path.write_text(json.dumps([
            {"no": 1, "name": "Fx", "correction": 0.5, "unit": "kN", "description": "x"},
            {"no": 2, "name": "Fy"},
        ]))
        sensors = read_sensor_file(path)
        assert list(sensors) == ["Fx", "Fy"]
        assert sensors["Fx"] == Sensor(1, "Fx", 0.5, "kN", "x")
        assert sensors["Fy"].correction == 1.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            read_sensor_file(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "sensors.json"
        path.write_text("[{")
        with pytest.raises(ConfigurationError, match="JSON"):
            read_sensor_file(path)

    def test_missing_field(self, tmp_path):
        path = tmp_path / "sensors.json"
        path.write_text(json.dumps([{"name": "Fx"}]))
        with pytest.raises(ConfigurationError):
            read_sensor_file(path)

    def test_duplicate_sensor(self, tmp_path):
        path = tmp_path / "sensors.json"
        path.write_text(json.dumps([{"no": 1, "name": "Fx"}, {"no": 2, "name": "Fx"}]))
        with pytest.raises(ConfigurationError, match="Duplicate"):
            read_sensor_file(path)


class TestUnitStressFile:

    @pytest.fixture
    def usf(self, tmp_path):
        path = tmp_path / "FX.usf"
        path.write_text(
            "node sxx syy szz sxy syz szx\n"
            "7 1 2 3 4 5 6\n"
            "3 -1 0 0 0 0 0\n"
            "5 10 0 0 0 0 1\n"
        )
        return path

    def test_all_nodes_in_file_order(self, usf):
        table = read_unit_stress_file(usf)
        assert table.shape == (3, 6)
        assert_allclose(table[0], [1, 2, 3, 4, 5, 6])

    def test_selected_nodes(self, usf):
        table = read_unit_stress_file(usf, nodes=[3, 5])
        assert_allclose(table[:, 0], [-1.0, 10.0])
        assert table[1, 5] == 1.0

    def test_missing_node(self, usf):
        with pytest.raises(ConfigurationError, match="nodes"):
            read_unit_stress_file(usf, nodes=[3, 4])

    def test_comma_delimited(self, tmp_path):
        path = tmp_path / "a.usf"
        path.write_text("1,1,0,0,0,0,0\n")
        table = read_unit_stress_file(path, header=0, delimiter=",")
        assert table.shape == (1, 6)

    def test_wrong_column_count(self, tmp_path):
        path = tmp_path / "a.usf"
        path.write_text("node sxx\n1 2\n")
        with pytest.raises(ConfigurationError, match="columns"):
            read_unit_stress_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            read_unit_stress_file(tmp_path / "missing.usf")


class TestTimeSeries:

    def test_columns_by_header(self, tmp_path, sensors):
        path = tmp_path / "lc.csv"
        path.write_text("time,Fy,Fx\n0,1,2\n1,3,4\n")
        samples = list(read_time_series(path, ["Fx", "Fy"], sensors))
        assert samples == [{"Fx": 2.0, "Fy": 2.0}, {"Fx": 4.0, "Fy": 6.0}]

    def test_columns_by_sensor_number(self, tmp_path, sensors):
        path = tmp_path / "lc.txt"
        path.write_text("0 1 2\n1 3 4\n\n")
        samples = list(read_time_series(path, ["Fx", "Fy"], sensors, header=0, delimiter=" "))
        assert samples == [{"Fx": 1.0, "Fy": 4.0}, {"Fx": 3.0, "Fy": 8.0}]

    def test_last_header_line_names_columns(self, tmp_path, sensors):
        path = tmp_path / "lc.csv"
        path.write_text("# recorded 2024\ntime,Fx,Fy\n0,1,1\n")
        samples = list(read_time_series(path, ["Fx"], sensors, header=2))
        assert samples == [{"Fx": 1.0}]

    def test_missing_column(self, tmp_path, sensors):
        path = tmp_path / "lc.csv"
        path.write_text("time,Fx\n0,1\n")
        with pytest.raises(DataError, match="Fy"):
            list(read_time_series(path, ["Fx", "Fy"], sensors))

    def test_short_line(self, tmp_path, sensors):
        path = tmp_path / "lc.csv"
        path.write_text("time,Fx,Fy\n0,1,2\n1,2\n")
        stream = read_time_series(path, ["Fx", "Fy"], sensors)
        next(stream)
        with pytest.raises(DataError) as exc_info:
            next(stream)
        assert exc_info.value.context["line"] == 3

    def test_non_numeric_value(self, tmp_path, sensors):
        path = tmp_path / "lc.csv"
        path.write_text("time,Fx\n0,abc\n")
        with pytest.raises(DataError, match="Non-numeric"):
            list(read_time_series(path, ["Fx"], sensors))

    def test_unknown_sensor(self, tmp_path, sensors):
        path = tmp_path / "lc.csv"
        path.write_text("time,Fz\n0,1\n")
        with pytest.raises(ConfigurationError):
            list(read_time_series(path, ["Fz"], sensors))

    def test_missing_file(self, tmp_path, sensors):
        with pytest.raises(ConfigurationError):
            list(read_time_series(tmp_path / "none.csv", ["Fx"], sensors))

    def test_streamed_lazily(self, tmp_path, sensors):
        """Errors further down the file surface only when reached."""
        path = tmp_path / "lc.csv"
        path.write_text("time,Fx\n0,1\n1,bad\n")
        stream = read_time_series(path, ["Fx"], sensors)
        assert next(stream) == {"Fx": 1.0}
        with pytest.raises(DataError):
            next(stream)
