"""View state and re-render policy for an interactive fractal view."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from . import transform as tr
from .canvas import PixelCanvas, allocate_buffer, configure_canvas, CHANNELS
from .errors import NonInvertibleTransformError
from .escape import DEFAULT_MAX_ITERATIONS, FractalParameters
from .grid import GridConfig, ZoomPolicy, build_transform, fit_grid_to_canvas, grid_to_engineering, rebuild_grid, recenter
from .renderer import FractalRenderer

logger = logging.getLogger(__name__)

DEFAULT_SCREEN_SIZE = (800, 600)
DEFAULT_PIXELS_PER_UNIT = 100.0
DEFAULT_CONSTANT = (-0.4, 0.6)


@dataclass(frozen=True)
class ConstantWalker:
    """Walks the fractal constant through a rectangle of constant space.

    The real part advances first; past ``cx_max`` it wraps to ``cx_min`` and
    the imaginary part advances, which in turn wraps past ``cy_max``.
    """

    cx_min: float = -1.0
    cx_max: float = 1.0
    cy_min: float = -1.0
    cy_max: float = 1.0
    step: float = 0.01

    def advance(self, constant: tuple[float, float]) -> tuple[float, float]:
        cx = constant[0] + self.step
        cy = constant[1]
        if cx > self.cx_max:
            cx = self.cx_min
            cy = cy + self.step
            if cy > self.cy_max:
                cy = self.cy_min
        return cx, cy


class RenderSession:
    """Owns the view configuration and the colour buffer between renders.

    The buffer is allocated once per canvas size and reused in place; it is
    re-rendered only after a change that affects the picture.
    """

    def __init__(
        self,
        width: int = DEFAULT_SCREEN_SIZE[0],
        height: int = DEFAULT_SCREEN_SIZE[1],
        *,
        pixels_per_unit: float = DEFAULT_PIXELS_PER_UNIT,
        constant: tuple[float, float] = DEFAULT_CONSTANT,
        center: tuple[float, float] = (0.0, 0.0),
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        n_threads: Optional[int] = None,
        deep_zoom: bool = True,
        walker: ConstantWalker = ConstantWalker(),
        verbose: bool = False,
    ) -> None:
        self.screen_size = (int(width), int(height))
        self.zoom_policy = ZoomPolicy(deep=deep_zoom)
        if not math.isfinite(pixels_per_unit) or pixels_per_unit <= 0.0:
            raise NonInvertibleTransformError(f"pixels per unit must be positive, got {pixels_per_unit}")
        ppu = self.zoom_policy.clamp(pixels_per_unit)
        self.pixels_per_unit = tr.point(ppu, ppu, ppu)
        self.engineering_offset = tr.point(0.0, 0.0)
        self.constant = (float(constant[0]), float(constant[1]))
        self.max_iterations = int(max_iterations)
        self.n_threads = n_threads
        self.walker = walker
        self.verbose = verbose
        self.render_count = 0

        self.transform = self._build_transform()
        self.canvas = self._configure_canvas()
        grid = GridConfig(grid_center_value=tr.point(center[0], center[1]))
        grid = fit_grid_to_canvas(grid, self.canvas.width, self.canvas.height, float(self.pixels_per_unit[0]))
        self.grid = rebuild_grid(self.transform, grid)

        self._buffer: Optional[np.ndarray] = None
        self.dirty = True

    @property
    def zoom(self) -> float:
        return float(self.pixels_per_unit[0])

    @property
    def buffer(self) -> Optional[np.ndarray]:
        if self._buffer is None:
            return None
        return self._buffer.reshape(self.canvas.height, self.canvas.width, CHANNELS)

    def _build_transform(self) -> np.ndarray:
        width, height = self.screen_size
        matrix = build_transform(self.engineering_offset, self.pixels_per_unit, tr.point(width / 2.0, height / 2.0))
        if not tr.is_invertible(matrix):
            raise NonInvertibleTransformError("engineering to pixel transform is not invertible")
        return matrix

    def _configure_canvas(self) -> PixelCanvas:
        width, height = self.screen_size
        return configure_canvas(
            width // 2,
            height // 2,
            width,
            height,
            self.zoom,
            self.zoom,
            n_threads=self.n_threads,
        )

    def invalidate(self) -> None:
        self.dirty = True

    def mouse_position(self, pixel_x: float, pixel_y: float) -> tuple[np.ndarray, np.ndarray]:
        """Grid-space and engineering-space positions under a pixel."""

        grid_pos = tr.apply(tr.invert(self.transform), tr.point(pixel_x, pixel_y))
        engineering = tr.apply(grid_to_engineering(self.grid), grid_pos)
        return grid_pos, engineering

    def zoom_by(self, steps: int) -> None:
        """Zoom in (positive) or out (negative) by a number of steps."""

        old = self.pixels_per_unit
        new = self.zoom_policy.step(old, steps)
        if tr.equal(old, new):
            return
        self.pixels_per_unit = new
        self.transform = self._build_transform()
        self.canvas = self._configure_canvas()
        grid = ZoomPolicy.rescale_dimensions(self.grid, old, new)
        self.grid = rebuild_grid(self.transform, grid)
        self.invalidate()

    def pan_to(self, pixel_x: float, pixel_y: float) -> None:
        """Centre the view on the engineering point under the cursor."""

        self.grid = recenter(self.grid, self.transform, pixel_x, pixel_y)
        self.invalidate()

    def set_constant(self, cx: float, cy: float) -> None:
        constant = (float(cx), float(cy))
        if constant != self.constant:
            self.constant = constant
            self.invalidate()

    def nudge_constant(self, dx: float, dy: float) -> None:
        self.set_constant(self.constant[0] + dx, self.constant[1] + dy)

    def step_constant(self) -> tuple[float, float]:
        """Auto-increment the constant one step through the walker's region."""

        self.set_constant(*self.walker.advance(self.constant))
        return self.constant

    def set_deep_zoom(self, deep: bool) -> None:
        self.zoom_policy = replace(self.zoom_policy, deep=deep)

    def resize(self, width: int, height: int) -> None:
        """Change the canvas size; the buffer is reallocated on the next frame."""

        size = (int(width), int(height))
        if size == self.screen_size:
            return
        old_size = self.screen_size
        self.screen_size = size
        try:
            canvas = self._configure_canvas()
        except Exception:
            self.screen_size = old_size
            raise
        self.canvas = canvas
        self.transform = self._build_transform()
        grid = fit_grid_to_canvas(self.grid, self.canvas.width, self.canvas.height, self.zoom)
        self.grid = rebuild_grid(self.transform, grid)
        self._buffer = None
        self.invalidate()

    def _ensure_buffer(self) -> np.ndarray:
        if self._buffer is None or self._buffer.shape[0] != self.canvas.num_pixels:
            self._buffer = allocate_buffer(self.canvas)
            if self.verbose:
                logger.debug("Allocated colour buffer for %dx%d pixels", self.canvas.width, self.canvas.height)
        return self._buffer

    def frame(self) -> np.ndarray:
        """Return the current picture, rendering first if anything changed."""

        if not self.dirty and self._buffer is not None:
            return self.buffer

        params = FractalParameters(constant=self.constant, max_iterations=self.max_iterations)
        renderer = FractalRenderer(self.grid, self.canvas, self.zoom, params, verbose=self.verbose)
        renderer.partition()
        buffer = self._ensure_buffer()
        try:
            image = renderer.render(buffer)
        except Exception:
            # Partly overwritten; never hand it out.
            self._buffer = None
            raise

        self.render_count += 1
        self.dirty = False
        # Diagnostics only for the first render of a session.
        self.verbose = False
        return image

    def close(self) -> None:
        self._buffer = None
        self.dirty = True
