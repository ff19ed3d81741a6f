from __future__ import annotations

import numpy as np
import pytest

from fractalgrid.escape import (
    DEFAULT_MAX_ITERATIONS,
    FractalParameters,
    colorize,
    escape_counts,
    fractal_color,
    iterate,
    mod2,
    next_value,
)


def test_next_value_squares_and_adds() -> None:
    assert next_value((1.0, 2.0), (0.5, -0.5)) == (1.0 - 4.0 + 0.5, 4.0 - 0.5)
    assert mod2((3.0, 4.0)) == 25.0


def test_interior_point_never_escapes() -> None:
    assert iterate((0.0, 0.0), (0.0, 0.0), 100) == 100
    assert iterate((0.0, 0.0), (-0.1, 0.1), 250) == 250


def test_far_constant_escapes_fast() -> None:
    assert iterate((0.0, 0.0), (2.0, 0.0), 100) <= 2
    # already outside the escape radius
    assert iterate((3.0, 0.0), (0.0, 0.0), 100) == 0


@pytest.mark.parametrize("z0", [(0.3, 0.2), (-0.6, 0.4), (0.05, -0.7), (1.2, 0.1)])
def test_iterate_is_monotonic_in_max(z0) -> None:
    c = (-0.4, 0.6)
    counts = [iterate(z0, c, m) for m in (1, 5, 20, 100, 500)]
    assert counts == sorted(counts)


def test_fractal_color_palette() -> None:
    assert fractal_color(0.0) == (0, 0, 0, 255)
    assert fractal_color(1.0) == (255, 255, 255, 255)
    code = int(float(0xFFFFFF) * 0.5)
    assert fractal_color(0.5) == (code & 0xFF, (code >> 8) & 0xFF, (code >> 16) & 0xFF, 255)


def test_colorize_matches_scalar_palette() -> None:
    max_iterations = 50
    counts = np.arange(0, max_iterations + 1, dtype=np.int32)
    rgba = colorize(counts, max_iterations)
    assert rgba.shape == (max_iterations + 1, 4)
    assert rgba.dtype == np.uint8
    for n, row in zip(counts, rgba):
        assert tuple(int(v) for v in row) == fractal_color(n / max_iterations)


def test_escape_counts_agree_with_scalar_iterate() -> None:
    c = (-0.4, 0.6)
    xs = np.array([0.0, 0.3, -1.5, 1.9, 0.0, 3.0])
    ys = np.array([0.0, -0.2, 0.5, 1.9, 1.2, 0.0])
    counts = escape_counts(xs, ys, c, 200)
    assert counts.dtype == np.int32
    expected = [iterate((x, y), c, 200) for x, y in zip(xs, ys)]
    assert counts.tolist() == expected


def test_escape_counts_accepts_2d_input() -> None:
    xs, ys = np.meshgrid(np.linspace(-1.0, 1.0, 7), np.linspace(-1.0, 1.0, 5))
    counts = escape_counts(xs, ys, (0.0, 0.0), 30)
    assert counts.shape == (35,)
    assert counts.max() <= 30


def test_escape_counts_empty() -> None:
    counts = escape_counts(np.zeros(0), np.zeros(0), (0.0, 0.0))
    assert counts.shape == (0,)


def test_fractal_parameters_defaults() -> None:
    params = FractalParameters()
    assert params.constant == (-0.4, 0.6)
    assert params.max_iterations == DEFAULT_MAX_ITERATIONS
    assert params.escape_radius2 == 4.0


def test_escape_radius_is_configurable() -> None:
    assert iterate((2.5, 0.0), (0.0, 0.0), 10) == 0
    assert iterate((2.5, 0.0), (0.0, 0.0), 10, escape_radius2=9.0) == 1
    xs = np.array([2.5, 0.3, -1.5])
    ys = np.array([0.0, -0.2, 0.5])
    counts = escape_counts(xs, ys, (-0.4, 0.6), 50, escape_radius2=9.0)
    assert counts.tolist() == [iterate((x, y), (-0.4, 0.6), 50, 9.0) for x, y in zip(xs, ys)]
