"""Multi-threaded Julia set rendering into one shared colour buffer."""

from __future__ import annotations

import enum
import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import transform as tr
from .canvas import PixelCanvas, RowBand, allocate_buffer, band_view, CHANNELS
from .errors import InvalidCanvasDimensionsError, NonInvertibleTransformError, ThreadSpawnError
from .escape import DEFAULT_MAX_ITERATIONS, ESCAPE_RADIUS2, FractalParameters, colorize, escape_counts
from .grid import GridConfig

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = "idle"
    PARTITIONED = "partitioned"
    RENDERING = "rendering"
    COMPLETE = "complete"


@dataclass(frozen=True)
class EngineeringWindow:
    """Engineering-space rectangle covered by the canvas."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def upper_left(self) -> tuple[float, float]:
        return self.left, self.top

    @property
    def upper_right(self) -> tuple[float, float]:
        return self.right, self.top

    @property
    def lower_right(self) -> tuple[float, float]:
        return self.right, self.bottom

    @property
    def height(self) -> float:
        return self.top - self.bottom


@dataclass(frozen=True)
class BandTask:
    """Everything one worker needs, copied by value.

    ``window`` is the band's own engineering sub-rectangle and bounds the
    positions the worker may sample; ``origin`` is the upper-left corner of
    the whole canvas so that positions depend only on the absolute pixel.
    """

    band: RowBand
    width: int
    origin: tuple[float, float]
    window: EngineeringWindow
    zoom: float
    constant: tuple[float, float]
    max_iterations: int
    escape_radius2: float = ESCAPE_RADIUS2


def engineering_window(grid: GridConfig) -> EngineeringWindow:
    cx = float(grid.grid_center_value[0])
    cy = float(grid.grid_center_value[1])
    half_x = float(grid.grid_dimensions[0]) * 0.5
    half_y = float(grid.grid_dimensions[1]) * 0.5
    return EngineeringWindow(left=cx - half_x, top=cy + half_y, right=cx + half_x, bottom=cy - half_y)


def plan_bands(grid: GridConfig, canvas: PixelCanvas, zoom: float, params: FractalParameters) -> tuple[BandTask, ...]:
    """One task per band; each sub-window spans exactly the band's pixel rows.

    The sub-window never reaches below the grid's bottom edge, so a row is
    clamped the same way whichever band renders it.
    """

    window = engineering_window(grid)
    step = 1.0 / float(zoom)

    tasks = []
    for band in canvas.bands():
        top = max(window.top - band.y_start * step, window.bottom)
        bottom = max(window.top - band.y_end * step, window.bottom)
        tasks.append(
            BandTask(
                band=band,
                width=canvas.width,
                origin=(window.left, window.top),
                window=EngineeringWindow(left=window.left, top=top, right=window.right, bottom=bottom),
                zoom=float(zoom),
                constant=(float(params.constant[0]), float(params.constant[1])),
                max_iterations=int(params.max_iterations),
                escape_radius2=float(params.escape_radius2),
            )
        )
    return tuple(tasks)


def render_band(task: BandTask, out: np.ndarray) -> None:
    """Fill ``out`` (the band's slice of the buffer) row by row, top to bottom."""

    rows = task.band.rows
    if rows <= 0 or task.width <= 0:
        return

    step = 1.0 / task.zoom
    cols = np.arange(task.width, dtype=np.float64)
    ys_abs = np.arange(task.band.y_start, task.band.y_end, dtype=np.float64)

    xs = np.minimum(task.origin[0] + cols * step, task.window.right)
    ys = np.maximum(task.origin[1] - ys_abs * step, task.window.bottom)

    grid_x = np.broadcast_to(xs, (rows, task.width))
    grid_y = np.broadcast_to(ys[:, np.newaxis], (rows, task.width))

    counts = escape_counts(grid_x, grid_y, task.constant, task.max_iterations, escape_radius2=task.escape_radius2)
    out[...] = colorize(counts, task.max_iterations)


class _BandWorker(threading.Thread):
    def __init__(self, task: BandTask, out: np.ndarray) -> None:
        super().__init__(name=f"fractal-band-{task.band.index}", daemon=True)
        self.task = task
        self.out = out
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            render_band(self.task, self.out)
        except Exception as exc:
            # Raised again on the orchestrating thread after join.
            self.error = exc


class FractalRenderer:
    """Renders one request: ``IDLE -> PARTITIONED -> RENDERING -> COMPLETE``."""

    def __init__(
        self,
        grid: GridConfig,
        canvas: PixelCanvas,
        zoom: float,
        params: FractalParameters,
        *,
        verbose: bool = False,
    ) -> None:
        self.grid = grid
        self.canvas = canvas
        self.zoom = zoom
        self.params = params
        self.verbose = verbose
        self.state = RenderState.IDLE
        self.tasks: tuple[BandTask, ...] = ()
        self.spawn_error: Optional[ThreadSpawnError] = None

    def validate(self) -> None:
        if self.canvas.width <= 0 or self.canvas.height <= 0:
            raise InvalidCanvasDimensionsError(
                f"canvas must have a positive size, got {self.canvas.width}x{self.canvas.height}"
            )
        if not tr.is_invertible(self.grid.transform):
            raise NonInvertibleTransformError("engineering to pixel transform is not invertible")
        if not math.isfinite(self.zoom) or self.zoom <= 0.0:
            raise NonInvertibleTransformError(f"zoom resolution must be positive, got {self.zoom}")

    def partition(self) -> tuple[BandTask, ...]:
        self.validate()
        self.tasks = plan_bands(self.grid, self.canvas, self.zoom, self.params)
        self.state = RenderState.PARTITIONED
        if self.verbose:
            window = engineering_window(self.grid)
            logger.debug("Canvas %dx%d, %d threads, y increment %.3f", self.canvas.width, self.canvas.height, self.canvas.n_threads, self.canvas.y_increment)
            logger.debug("PosUpperLeft: %s", tr.format_vector(tr.point(*window.upper_left)))
            logger.debug("PosUpperRight: %s", tr.format_vector(tr.point(*window.upper_right)))
            logger.debug("PosLowerRight: %s", tr.format_vector(tr.point(*window.lower_right)))
            for task in self.tasks:
                logger.debug(
                    "Band %d: rows [%d, %d) offset %d, window top %.6f bottom %.6f",
                    task.band.index,
                    task.band.y_start,
                    task.band.y_end,
                    task.band.offset,
                    task.window.top,
                    task.window.bottom,
                )
        return self.tasks

    def _check_buffer(self, out: Optional[np.ndarray]) -> np.ndarray:
        if out is None:
            return allocate_buffer(self.canvas)
        if out.shape != (self.canvas.num_pixels, CHANNELS) or out.dtype != np.uint8:
            raise InvalidCanvasDimensionsError(
                f"buffer of shape {out.shape} does not fit a {self.canvas.width}x{self.canvas.height} canvas"
            )
        return out

    def _single_thread_task(self) -> BandTask:
        window = engineering_window(self.grid)
        band = RowBand(index=0, y_start=0, y_end=self.canvas.height, offset=0, length=self.canvas.num_pixels)
        return BandTask(
            band=band,
            width=self.canvas.width,
            origin=(window.left, window.top),
            window=window,
            zoom=float(self.zoom),
            constant=(float(self.params.constant[0]), float(self.params.constant[1])),
            max_iterations=int(self.params.max_iterations),
            escape_radius2=float(self.params.escape_radius2),
        )

    def render(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Blocking render; returns the buffer as ``(height, width, 4)``."""

        if self.state is not RenderState.PARTITIONED:
            self.partition()
        buffer = self._check_buffer(out)

        self.state = RenderState.RENDERING
        workers: list[_BandWorker] = []
        try:
            for task in self.tasks:
                worker = _BandWorker(task, band_view(buffer, task.band))
                worker.start()
                workers.append(worker)
        except RuntimeError as exc:
            for worker in workers:
                worker.join()
            self.spawn_error = ThreadSpawnError(f"could not start worker {len(workers)}: {exc}")
            logger.warning("%s; rendering the full canvas on one thread", self.spawn_error)
            workers = []
            render_band(self._single_thread_task(), buffer)

        for worker in workers:
            worker.join()

        for worker in workers:
            if worker.error is not None:
                self.state = RenderState.IDLE
                raise worker.error

        self.state = RenderState.COMPLETE
        return buffer.reshape(self.canvas.height, self.canvas.width, CHANNELS)


def render_fractal(
    grid: GridConfig,
    canvas: PixelCanvas,
    zoom: float,
    constant: tuple[float, float],
    out: Optional[np.ndarray] = None,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    verbose: bool = False,
) -> np.ndarray:
    """Render the Julia set for ``constant`` over the grid's engineering window.

    Pixels are packed RGBA in row-major order, top row first. ``out`` may be a
    preallocated flat buffer of ``(width * height, 4)`` uint8 to fill in place.
    """

    params = FractalParameters(constant=(float(constant[0]), float(constant[1])), max_iterations=int(max_iterations))
    renderer = FractalRenderer(grid, canvas, zoom, params, verbose=verbose)
    return renderer.render(out)
