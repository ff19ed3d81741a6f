"""Public API for coordinate transforms and parallel Julia set rendering."""

from .canvas import PixelCanvas, RowBand, allocate_buffer, configure_canvas, partition_rows
from .errors import (
    FractalGridError,
    InvalidCanvasDimensionsError,
    NonInvertibleTransformError,
    ThreadSpawnError,
)
from .escape import FractalParameters, colorize, escape_counts, fractal_color, iterate
from .grid import (
    GridConfig,
    GridLine,
    ZoomPolicy,
    build_transform,
    fit_grid_to_canvas,
    rebuild_grid,
    recenter,
)
from .renderer import EngineeringWindow, FractalRenderer, RenderState, engineering_window, render_fractal
from .session import ConstantWalker, RenderSession

__all__ = [
    "ConstantWalker",
    "EngineeringWindow",
    "FractalGridError",
    "FractalParameters",
    "FractalRenderer",
    "GridConfig",
    "GridLine",
    "InvalidCanvasDimensionsError",
    "NonInvertibleTransformError",
    "PixelCanvas",
    "RenderSession",
    "RenderState",
    "RowBand",
    "ThreadSpawnError",
    "ZoomPolicy",
    "allocate_buffer",
    "build_transform",
    "colorize",
    "configure_canvas",
    "engineering_window",
    "escape_counts",
    "fit_grid_to_canvas",
    "fractal_color",
    "iterate",
    "partition_rows",
    "rebuild_grid",
    "recenter",
    "render_fractal",
]
