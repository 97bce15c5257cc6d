"""
Unit tests for stress reconstruction and stress criteria.
"""
import itertools
import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from fatigue.core.errors import ConfigurationError, DataError
from fatigue.core.interpolation import InterpolationPoint, build_interpolant
from fatigue.core.stress import (
    StressComponent,
    StressCriterion,
    StressCriterionMethod,
    node_stress_history,
    principal_stresses,
    reconstruct_stress,
    superpose_stress,
    von_mises,
)


def tensor(sxx=0.0, syy=0.0, szz=0.0, sxy=0.0, syz=0.0, szx=0.0):
    return np.array([[sxx, syy, szz, sxy, syz, szx]])


@pytest.fixture
def scalar_interpolant():
    """Two channels, two nodes: node0 = 2·Fx + Fy, node1 = Fx − Fy."""
    points = [
        InterpolationPoint((1.0, 0.0), np.array([2.0, 1.0])),
        InterpolationPoint((0.0, 1.0), np.array([1.0, -1.0])),
    ]
    return build_interpolant(points)


class TestStressCriteria:
    """Reduction of tensors to scalar stress channels."""

    def test_none_uses_sxx(self):
        result = StressCriterion()(tensor(sxx=12.0, syy=30.0))
        assert result.shape == (1, 1)
        assert result[0, 0] == 12.0

    def test_von_mises_uniaxial(self):
        assert_allclose(von_mises(tensor(sxx=100.0)), [100.0])

    def test_von_mises_pure_shear(self):
        assert_allclose(von_mises(tensor(sxy=50.0)), [50.0 * math.sqrt(3.0)])

    def test_signed_von_mises_follows_dominant_principal(self):
        criterion = StressCriterion(StressCriterionMethod.VONMISES)
        assert_allclose(criterion(tensor(sxx=-80.0)), [[-80.0]])
        assert_allclose(criterion(tensor(sxx=80.0)), [[80.0]])

    def test_maximum_principal(self):
        criterion = StressCriterion(StressCriterionMethod.MAXIMUM)
        # principal stresses of this plane state are 50 ± 50·√2
        result = criterion(tensor(sxx=100.0, sxy=50.0))
        assert_allclose(result, [[50.0 + 50.0 * math.sqrt(2.0)]])

    def test_principal_stresses_are_sorted(self):
        principal = principal_stresses(tensor(sxx=3.0, syy=-1.0, szz=2.0))
        assert_allclose(principal, [[-1.0, 2.0, 3.0]])

    def test_critical_plane_normal_stress(self):
        criterion = StressCriterion(StressCriterionMethod.SXXCRIT, number=4)
        result = criterion(tensor(sxx=10.0, syy=4.0, sxy=2.0))
        # planes at 0°, 45°, 90°, 135°
        assert_allclose(result, [[10.0, 9.0, 4.0, 5.0]], atol=1e-12)
        assert criterion.channels == 4

    def test_critical_plane_requires_number(self):
        with pytest.raises(ConfigurationError):
            StressCriterion(StressCriterionMethod.SXXCRIT)
        with pytest.raises(ConfigurationError):
            StressCriterion(StressCriterionMethod.SXXCRIT, number=0)

    def test_tensor_shape_is_checked(self):
        with pytest.raises(DataError):
            StressCriterion()(np.ones((2, 5)))

    def test_batch_of_nodes(self):
        tensors = np.vstack([tensor(sxx=1.0), tensor(sxx=-2.0), tensor(syy=3.0)])
        result = StressCriterion(StressCriterionMethod.MAXIMUM)(tensors)
        assert_allclose(result[:, 0], [1.0, -2.0, 3.0])


class TestReconstructStress:
    """Streaming evaluation of load samples."""

    def test_scaled_evaluation(self, scalar_interpolant):
        samples = [{"Fx": 1.0, "Fy": 0.0}, {"Fx": 2.0, "Fy": 3.0}]
        result = list(reconstruct_stress(samples, scalar_interpolant, ["Fx", "Fy"], scale=0.5))
        assert_allclose(result[0], [1.0, 0.5])
        assert_allclose(result[1], [3.5, -0.5])

    def test_channel_order_follows_names(self, scalar_interpolant):
        samples = [{"Fy": 3.0, "Fx": 2.0}]
        result = next(reconstruct_stress(samples, scalar_interpolant, ["Fx", "Fy"]))
        assert_allclose(result, [7.0, -1.0])

    def test_sequence_samples(self, scalar_interpolant):
        result = next(reconstruct_stress([(1.0, 1.0)], scalar_interpolant, ["Fx", "Fy"]))
        assert_allclose(result, [3.0, 0.0])

    def test_channel_mismatch_names_sample(self, scalar_interpolant):
        samples = [{"Fx": 1.0, "Fy": 0.0}, {"Fx": 1.0, "Fz": 0.0}]
        stream = reconstruct_stress(samples, scalar_interpolant, ["Fx", "Fy"])
        next(stream)
        with pytest.raises(DataError, match="Sample 1") as exc_info:
            next(stream)
        assert exc_info.value.context["sample"] == 1

    def test_sequence_length_mismatch(self, scalar_interpolant):
        with pytest.raises(DataError):
            list(reconstruct_stress([(1.0, 2.0, 3.0)], scalar_interpolant, ["Fx", "Fy"]))

    def test_non_finite_sample(self, scalar_interpolant):
        with pytest.raises(DataError):
            list(reconstruct_stress([{"Fx": float("nan"), "Fy": 0.0}], scalar_interpolant, ["Fx", "Fy"]))

    def test_sensor_count_must_match_dimension(self, scalar_interpolant):
        with pytest.raises(ConfigurationError):
            list(reconstruct_stress([{"Fx": 1.0}], scalar_interpolant, ["Fx"]))

    def test_stream_is_lazy(self, scalar_interpolant):
        """An unbounded sample source is consumed one sample at a time."""
        source = ({"Fx": float(i), "Fy": 0.0} for i in itertools.count())
        stream = reconstruct_stress(source, scalar_interpolant, ["Fx", "Fy"])
        first = list(itertools.islice(stream, 3))
        assert [float(s[0]) for s in first] == [0.0, 2.0, 4.0]

    def test_node_history(self, scalar_interpolant):
        samples = [{"Fx": 1.0, "Fy": 0.0}, {"Fx": 0.0, "Fy": 1.0}]
        history = list(node_stress_history(samples, scalar_interpolant, ["Fx", "Fy"], node=1))
        assert history == [1.0, -1.0]

    def test_criterion_applied_to_tensors(self):
        points = [InterpolationPoint((1.0,), tensor(sxx=-3.0))]
        interpolant = build_interpolant(points)
        criterion = StressCriterion(StressCriterionMethod.VONMISES)
        result = next(reconstruct_stress([{"F": 2.0}], interpolant, ["F"], criterion=criterion))
        assert_allclose(result, [[-6.0]])


class TestSuperposeStress:
    """Sum of several interpolations."""

    def test_components_are_summed(self, scalar_interpolant):
        other = build_interpolant([InterpolationPoint((1.0,), np.array([10.0, 20.0]))])
        components = [
            StressComponent(scalar_interpolant, ("Fx", "Fy"), scale=1.0),
            StressComponent(other, ("Mz",), scale=0.1),
        ]
        samples = [{"Fx": 1.0, "Fy": 1.0, "Mz": 2.0}]
        result = next(superpose_stress(samples, components))
        assert_allclose(result, [3.0 + 2.0, 0.0 + 4.0])

    def test_shared_channels(self, scalar_interpolant):
        components = [
            StressComponent(scalar_interpolant, ("Fx", "Fy")),
            StressComponent(scalar_interpolant, ("Fy", "Fx")),
        ]
        result = next(superpose_stress([{"Fx": 1.0, "Fy": 0.0}], components))
        assert_allclose(result, [3.0, 0.0])

    def test_requires_components(self):
        with pytest.raises(ConfigurationError):
            list(superpose_stress([{"Fx": 1.0}], []))

    def test_component_dimension_checked(self, scalar_interpolant):
        with pytest.raises(ConfigurationError):
            StressComponent(scalar_interpolant, ("Fx",))
