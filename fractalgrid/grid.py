"""Grid geometry, the engineering to pixel transform and view policies."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np

from . import transform as tr

DEFAULT_TICK_DISTANCE = 0.1
DEFAULT_GRID_DIMENSIONS = (8.0, 6.0)
SUBDIVIDER_EVERY = 5

MIN_PIXELS_PER_UNIT = 50.0
MAX_PIXELS_PER_UNIT = 1000.0
DEEP_MAX_PIXELS_PER_UNIT = 1e8
ZOOM_STEP = 10.0
DEEP_ZOOM_IN = 1.1
DEEP_ZOOM_OUT = 1.5


@dataclass(frozen=True)
class GridLine:
    """A line segment in pixel space with optional axis labels at ``start``."""

    start: tuple[int, int]
    end: tuple[int, int]
    label_x: str = ""
    label_y: str = ""


@dataclass(frozen=True)
class GridConfig:
    """Description of the visible grid.

    ``grid_dimensions`` is the size of the grid in engineering units and
    ``grid_center_value`` the engineering point shown at its centre. The
    remaining fields are derived by :func:`rebuild_grid`.
    """

    tick_distance: float = DEFAULT_TICK_DISTANCE
    grid_dimensions: np.ndarray = field(default_factory=lambda: tr.vector(*DEFAULT_GRID_DIMENSIONS))
    grid_center_value: np.ndarray = field(default_factory=lambda: tr.point(0.0, 0.0))
    grid_screen_centre: np.ndarray = field(default_factory=lambda: tr.point(0.0, 0.0))
    grid_lines: tuple[GridLine, ...] = ()
    subdivider_lines: tuple[GridLine, ...] = ()
    transform: np.ndarray = field(default_factory=tr.identity)


@dataclass(frozen=True)
class _Segment:
    from_x: float
    from_y: float
    to_x: float
    to_y: float
    tag_x: bool = False
    tag_y: bool = False


def build_transform(engineering_offset: np.ndarray, pixels_per_unit: np.ndarray, screen_center_pixels: np.ndarray) -> np.ndarray:
    """Engineering to pixel transform centred on ``screen_center_pixels``.

    The y axis is flipped since pixel rows grow downwards. All three
    ``pixels_per_unit`` components must be non-zero for the result to be
    invertible; check with :func:`fractalgrid.transform.is_invertible`.
    """

    result = tr.identity()
    for axis in range(3):
        result[axis, 3] = screen_center_pixels[axis] + engineering_offset[axis] * pixels_per_unit[axis]
    result[0, 0] = pixels_per_unit[0]
    result[1, 1] = -pixels_per_unit[1]
    result[2, 2] = pixels_per_unit[2]
    return result


def grid_to_engineering(grid: GridConfig) -> np.ndarray:
    return tr.translation(grid.grid_center_value)


def _label(value: float) -> str:
    return "%.1f" % value


def _to_pixel(matrix: np.ndarray, x: float, y: float) -> tuple[int, int]:
    p = tr.apply(matrix, tr.point(x, y))
    return int(p[0]), int(p[1])


def rebuild_grid(transform: np.ndarray, grid: GridConfig) -> GridConfig:
    """Regenerate gridlines, ticks and labels for ``transform``.

    The grid is laid out in grid space around the origin and mapped into
    pixel space through ``transform``. Labels carry the engineering value at
    the tick, one decimal.
    """

    length = float(grid.grid_dimensions[0])
    height = float(grid.grid_dimensions[1])
    tick = float(grid.tick_distance)
    left = -length / 2.0
    bottom = -height / 2.0

    segments = [
        _Segment(left, bottom, left, bottom + height),
        _Segment(left, bottom, left + length, bottom),
        _Segment(left + length, bottom, left + length, bottom + height),
        _Segment(left, bottom + height, left + length, bottom + height),
        _Segment(left, bottom + height / 2.0, left + length, bottom + height / 2.0),
        _Segment(left + length / 2.0, bottom, left + length / 2.0, bottom + height),
    ]
    dividers: list[_Segment] = []

    num_ticks_x = int(length / tick) if tick > 0 else 0
    num_ticks_y = int(height / tick) if tick > 0 else 0

    for idx in range(num_ticks_x):
        x = left + idx * tick
        y = bottom + height / 2.0
        major = idx != 0 and idx % SUBDIVIDER_EVERY == 0
        segments.append(_Segment(x, y, x, y + tick / 2.0, tag_x=major))
        if major:
            dividers.append(_Segment(x, bottom, x, bottom + height))

    for idx in range(num_ticks_y):
        x = left + length / 2.0
        y = bottom + idx * tick
        major = idx != 0 and idx % SUBDIVIDER_EVERY == 0
        segments.append(_Segment(x, y, x + tick / 2.0, y, tag_y=major))
        if major:
            dividers.append(_Segment(left, y, left + length, y))

    g2e = grid_to_engineering(grid)

    lines = []
    for seg in segments:
        label_x = _label(tr.apply(g2e, tr.point(seg.from_x, 0.0))[0]) if seg.tag_x else ""
        label_y = _label(tr.apply(g2e, tr.point(0.0, seg.from_y))[1]) if seg.tag_y else ""
        lines.append(
            GridLine(
                start=_to_pixel(transform, seg.from_x, seg.from_y),
                end=_to_pixel(transform, seg.to_x, seg.to_y),
                label_x=label_x,
                label_y=label_y,
            )
        )

    subdividers = tuple(
        GridLine(start=_to_pixel(transform, seg.from_x, seg.from_y), end=_to_pixel(transform, seg.to_x, seg.to_y))
        for seg in dividers
    )

    return replace(
        grid,
        grid_lines=tuple(lines),
        subdivider_lines=subdividers,
        grid_screen_centre=tr.apply(transform, tr.point(0.0, 0.0)),
        transform=np.array(transform, dtype=np.float64, copy=True),
    )


def pixel_to_engineering(grid: GridConfig, transform: np.ndarray, pixel_x: float, pixel_y: float) -> np.ndarray:
    """Engineering point under a pixel position.

    Raises :class:`fractalgrid.errors.NonInvertibleTransformError` for a
    degenerate transform.
    """

    grid_pos = tr.apply(tr.invert(transform), tr.point(pixel_x, pixel_y))
    return tr.apply(grid_to_engineering(grid), grid_pos)


def recenter(grid: GridConfig, transform: np.ndarray, pixel_x: float, pixel_y: float) -> GridConfig:
    """Move the view so the engineering position under the cursor becomes the centre."""

    center = pixel_to_engineering(grid, transform, pixel_x, pixel_y)
    center[2] = 0.0
    return rebuild_grid(transform, replace(grid, grid_center_value=center))


def fit_grid_to_canvas(grid: GridConfig, width: int, height: int, pixels_per_unit: float) -> GridConfig:
    """Grid dimensions that exactly cover a ``width`` x ``height`` canvas."""

    dims = tr.vector(width / pixels_per_unit, height / pixels_per_unit)
    return replace(grid, grid_dimensions=dims)


@dataclass(frozen=True)
class ZoomPolicy:
    """Zoom stepping and clamping for the pixels-per-unit scale.

    x, y and z always change together. In ``deep`` mode the steps are
    multiplicative and the upper clamp is raised so fractal detail can be
    followed.
    """

    deep: bool = False
    min_pixels_per_unit: float = MIN_PIXELS_PER_UNIT
    max_pixels_per_unit: float = MAX_PIXELS_PER_UNIT
    deep_max_pixels_per_unit: float = DEEP_MAX_PIXELS_PER_UNIT

    @property
    def upper(self) -> float:
        return self.deep_max_pixels_per_unit if self.deep else self.max_pixels_per_unit

    def clamp(self, value: float) -> float:
        return float(min(max(value, self.min_pixels_per_unit), self.upper))

    def step(self, pixels_per_unit: np.ndarray, steps: int) -> np.ndarray:
        """Apply ``steps`` zoom steps; positive zooms in."""

        value = float(pixels_per_unit[0])
        for _ in range(abs(steps)):
            if self.deep:
                value = value * DEEP_ZOOM_IN if steps > 0 else value / DEEP_ZOOM_OUT
            else:
                value = value + ZOOM_STEP if steps > 0 else value - ZOOM_STEP
            value = self.clamp(value)
        result = np.array(pixels_per_unit, dtype=np.float64, copy=True)
        result[:3] = value
        return result

    @staticmethod
    def rescale_dimensions(grid: GridConfig, old_ppu: np.ndarray, new_ppu: np.ndarray) -> GridConfig:
        """Keep the grid's pixel footprint when the scale changes."""

        dims = np.array(grid.grid_dimensions, dtype=np.float64, copy=True)
        dims[0] = dims[0] * old_ppu[0] / new_ppu[0]
        dims[1] = dims[1] * old_ppu[1] / new_ppu[1]
        return replace(grid, grid_dimensions=dims)
