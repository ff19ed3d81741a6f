import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import logging

import numpy as np
import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont
import imageio

from fractalgrid import ConstantWalker, FractalGridError, GridConfig, RenderSession

from argparse import ArgumentParser


@dataclass
class OutputConfig:
    mode: str
    path: Path
    image_format: str


def build_parser():
    parser = ArgumentParser(description="Render Julia sets through a pannable, zoomable engineering grid.")

    parser.add_argument('--width', type=int, dest='width', help='canvas width in pixels',
                        metavar='WIDTH', default=800)
    parser.add_argument('--height', type=int, dest='height', help='canvas height in pixels',
                        metavar='HEIGHT', default=600)

    parser.add_argument('--x-center', type=float, dest='x_center',
                        help='engineering x value shown at the centre of the canvas', metavar='X_CENTER', default=0.0)
    parser.add_argument('--y-center', type=float, dest='y_center',
                        help='engineering y value shown at the centre of the canvas', metavar='Y_CENTER', default=0.0)

    parser.add_argument('--zoom', type=float, dest='zoom', help='initial pixels per engineering unit',
                        metavar='ZOOM', default=100.0)
    parser.add_argument('--zoom-steps', type=int, dest='zoom_steps',
                        help='zoom steps to apply before rendering; negative values zoom out',
                        metavar='STEPS', default=0)
    parser.add_argument('--deep', dest='deep', action='store_true',
                        help='multiplicative zoom steps with a raised zoom cap for following fractal detail')

    parser.add_argument('--pan', type=float, nargs=2, dest='pan', metavar=('PIXEL_X', 'PIXEL_Y'),
                        help='recentre the view on the point under this pixel before rendering')

    parser.add_argument('--cx', type=float, dest='cx', help='real part of the Julia constant',
                        metavar='CX', default=-0.4)
    parser.add_argument('--cy', type=float, dest='cy', help='imaginary part of the Julia constant',
                        metavar='CY', default=0.6)

    parser.add_argument('--max-iterations', type=int, dest='max_iterations',
                        help='maximum number of iterations per pixel', metavar='MAX_ITERATIONS', default=500)
    parser.add_argument('--threads', type=int, dest='threads',
                        help='worker threads; defaults to the number of CPUs', metavar='THREADS', default=None)

    parser.add_argument('--walk', type=int, dest='walk',
                        help='frames for gif mode; the constant auto-increments between frames',
                        metavar='FRAMES', default=30)
    parser.add_argument('--walk-step', type=float, dest='walk_step',
                        help='constant increment per gif frame', metavar='STEP', default=0.01)

    parser.add_argument('--mode', dest='mode', choices=['image', 'gif'], default='image',
                        help='write a single image or an animated gif of the constant walk')
    parser.add_argument('--output', dest='output', type=str,
                        help='destination file for the image or gif')
    parser.add_argument('--format', type=str, dest='format',
                        help='file format for image mode. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--show-grid', dest='show_grid', action='store_true',
                        help='draw the engineering grid, ticks and axis labels on top of the fractal')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and render diagnostics.')

    return parser


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    if opt.width <= 0 or opt.height <= 0:
        parser.error("--width and --height must be positive.")
    if opt.zoom <= 0:
        parser.error("--zoom must be positive.")
    if opt.max_iterations <= 0:
        parser.error("--max-iterations must be positive.")
    if opt.threads is not None and opt.threads <= 0:
        parser.error("--threads must be positive.")
    if opt.mode == "gif" and opt.walk <= 0:
        parser.error("--walk must be positive in gif mode.")

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    if opt.mode == "gif":
        path = Path(opt.output).expanduser() if opt.output else Path("walk.gif")
        if path.suffix:
            if path.suffix.lower() != ".gif":
                parser.error("GIF outputs must end with .gif.")
        else:
            path = path.with_suffix(".gif")
        image_format = "gif"
    else:
        path = Path(opt.output).expanduser() if opt.output else Path(f"julia.{image_format}")
        expected_suffix = f".{image_format}"
        if path.suffix:
            if path.suffix.lower() != expected_suffix.lower():
                parser.error(f"--output extension {path.suffix} does not match --format {image_format}.")
        else:
            path = path.with_suffix(expected_suffix)

    if path.exists() and path.is_dir():
        parser.error("--output must point to a file, not a directory.")

    return OutputConfig(mode=opt.mode, path=path.resolve(), image_format=image_format)


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if pil_format == "JPEG":
        image = image.convert("RGB")
    image.save(str(output_path), format=pil_format)


def write_gif(writer: Any, frame_array: np.ndarray) -> None:
    """Append ``frame_array`` to an active GIF writer."""

    writer.append_data(frame_array)


_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
)


def _load_label_font(size: int = 10) -> PIL.ImageFont.ImageFont:
    for path in _FONT_CANDIDATES:
        font_path = Path(path)
        if font_path.exists():
            try:
                return PIL.ImageFont.truetype(str(font_path), size)
            except OSError:
                continue
    return PIL.ImageFont.load_default()


def draw_grid_overlay(image: PIL.Image.Image, grid: GridConfig) -> PIL.Image.Image:
    """Draw gridlines, subdividers and axis labels over a rendered frame."""

    base = image.convert("RGBA")
    overlay = PIL.Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = PIL.ImageDraw.Draw(overlay)
    font = _load_label_font()

    line_color = (80, 80, 80, 160)
    divider_color = (200, 200, 200, 90)
    text_color = (235, 235, 235, 255)

    for line in grid.subdivider_lines:
        draw.line([line.start, line.end], fill=divider_color, width=1)

    for line in grid.grid_lines:
        draw.line([line.start, line.end], fill=line_color, width=1)
        x, y = line.start
        if line.label_x:
            draw.text((x - 1, y + 8), line.label_x, fill=text_color, font=font)
        if line.label_y:
            draw.text((x - 20, y - 10), line.label_y, fill=text_color, font=font)

    return PIL.Image.alpha_composite(base, overlay)


def frame_to_image(frame: np.ndarray, grid: GridConfig | None) -> PIL.Image.Image:
    image = PIL.Image.fromarray(np.ascontiguousarray(frame))
    if grid is not None:
        image = draw_grid_overlay(image, grid)
    return image


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    output_config = resolve_output_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    if VERBOSE:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    log("TensorFlow version: %s" % tf.__version__)

    walker = ConstantWalker(step=opt.walk_step)
    try:
        session = RenderSession(
            opt.width,
            opt.height,
            pixels_per_unit=opt.zoom,
            constant=(opt.cx, opt.cy),
            center=(opt.x_center, opt.y_center),
            max_iterations=opt.max_iterations,
            n_threads=opt.threads,
            deep_zoom=opt.deep,
            walker=walker,
            verbose=VERBOSE,
        )
        if opt.zoom_steps:
            session.zoom_by(opt.zoom_steps)
        if opt.pan is not None:
            session.pan_to(opt.pan[0], opt.pan[1])
    except FractalGridError as exc:
        parser.error(str(exc))

    log("Canvas %dx%d, %d threads, zoom %.3f" % (session.canvas.width, session.canvas.height, session.canvas.n_threads, session.zoom))

    grid = session.grid if opt.show_grid else None

    try:
        if output_config.mode == "image":
            frame = session.frame()
            write_single_image(frame_to_image(frame, grid), output_config.path, output_config.image_format)
        else:
            output_config.path.parent.mkdir(parents=True, exist_ok=True)
            writer = imageio.get_writer(str(output_config.path), mode='I', duration=0.1, loop=0)
            try:
                for i in range(opt.walk):
                    print("frame {0} out of {1}".format(i, opt.walk), end='\r')
                    frame = session.frame()
                    image = frame_to_image(frame, grid)
                    write_gif(writer, np.array(image.convert("RGB")))
                    log("constant %.4f %+.4fi" % session.constant)
                    session.step_constant()
            finally:
                writer.close()
    except FractalGridError as exc:
        parser.exit(1, f"render failed: {exc}\n")
    finally:
        session.close()

    log("Wrote %s" % output_config.path)


if __name__ == '__main__':
    main()
