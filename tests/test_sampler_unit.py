"""Tests for curve sampling."""

import math

import pytest

from zof_sampler import sample_function


class TestSampleFunction:
    def test_default_point_count(self):
        sampled = sample_function("x^2", -5, 5)
        assert len(sampled.samples) == 500

    def test_endpoints_and_spacing(self):
        sampled = sample_function("x", 0, 10, 11)
        xs = [x for x, _ in sampled.samples]
        assert xs == pytest.approx([float(i) for i in range(11)])

    def test_singularity_kept_as_nan(self):
        sampled = sample_function("1/x", -1, 1, 501)
        assert len(sampled.samples) == 501
        x_mid, y_mid = sampled.samples[250]
        assert x_mid == 0.0
        assert math.isnan(y_mid)
        assert sampled.y_min < sampled.y_max

    def test_padding_is_ten_percent(self):
        sampled = sample_function("x", 0, 10, 11)
        assert sampled.y_min == pytest.approx(-1.0)
        assert sampled.y_max == pytest.approx(11.0)

    def test_large_values_clamped(self):
        sampled = sample_function("x^3", 0, 1000, 11)
        assert sampled.samples[-1][1] == 1e6
        assert sampled.samples[1][1] == pytest.approx(1e6)
        assert sampled.y_max == pytest.approx(1.1e6)

    def test_negative_values_clamped_with_sign(self):
        sampled = sample_function("-exp(x)", 0, 20, 3)
        assert sampled.samples[-1][1] == -1e6

    def test_flat_function_expanded(self):
        sampled = sample_function("3", -1, 1, 5)
        assert sampled.y_min == pytest.approx(1.8)
        assert sampled.y_max == pytest.approx(4.2)

    def test_undefined_everywhere_defaults(self):
        sampled = sample_function("sqrt(x)", -2, -1, 5)
        assert all(math.isnan(y) for _, y in sampled.samples)
        assert sampled.y_min == pytest.approx(-1.2)
        assert sampled.y_max == pytest.approx(1.2)

    def test_needs_two_points(self):
        with pytest.raises(ValueError):
            sample_function("x", 0, 1, 1)
