import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path

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


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

from rasterscan import (
    ConfigurationError,
    RenderParameters,
    ViewWindow,
    downsample,
    render_frame,
    to_image,
    write_image,
)

log("TensorFlow version: %s" % tf.__version__)

# Place the iteration on the first GPU when TensorFlow sees one, else the CPU.
gpus = tf.config.list_physical_devices('GPU')
if gpus:
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
        DEVICE = '/GPU:0'
        log("GPU found, using %s" % gpus[0].name)
    except RuntimeError as e:
        log(e)
        DEVICE = '/CPU:0'
else:
    DEVICE = '/CPU:0'
    log("No GPU found, using CPU")

from argparse import ArgumentParser

DEFAULT_CENTER = (-0.75, 0.0)
DEFAULT_SPAN = 3.5


@dataclass
class OutputConfig:
    image_path: Path
    image_format: str
    antialias: bool


def build_parser():
    parser = ArgumentParser(description='Render the Mandelbrot set with distance estimation colouring.')

    parser.add_argument('real', type=float, nargs='?', default=None,
                        help='real part of the view center (default: %s)' % DEFAULT_CENTER[0])

    parser.add_argument('imag', type=float, nargs='?', default=None,
                        help='imaginary part of the view center (default: %s)' % DEFAULT_CENTER[1])

    parser.add_argument('span', type=float, nargs='?', default=None,
                        help='width and height of the view in the complex plane (default: %s)' % DEFAULT_SPAN)

    parser.add_argument('--size', type=int,
                        dest='size', help='side length of the rendered square raster before anti-aliasing',
                        metavar='SIZE', default=1600)

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='maximum number of times to iterate the quadratic map',
                        metavar='MAX_ITERATIONS', default=10000)

    parser.add_argument('--escape-radius', type=float,
                        dest='escape_radius', help='radius beyond which an orbit counts as escaped (must be > 1)',
                        metavar='ESCAPE_RADIUS', default=10.0)

    parser.add_argument('--output', dest='output', type=str, default='out.png',
                        help='destination file for the rendered image')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for the image. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--no-antialias', dest='antialias', action='store_false',
                        help='write the raster at full size instead of downsampling it by 2')

    parser.add_argument('--band-height', type=int,
                        dest='band_height', help='number of raster rows evaluated per work item',
                        metavar='ROWS', default=32)

    parser.add_argument('--workers', type=int,
                        dest='workers', help='number of worker threads (default: one per CPU)',
                        metavar='WORKERS', default=None)

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_window(opt, parser: ArgumentParser) -> ViewWindow:
    given = [value is not None for value in (opt.real, opt.imag, opt.span)]
    if not any(given):
        real, imag = DEFAULT_CENTER
        span = DEFAULT_SPAN
    elif all(given):
        real, imag, span = opt.real, opt.imag, opt.span
    else:
        parser.error("REAL, IMAG and SPAN must be given together.")

    try:
        return ViewWindow.from_parts(real, imag, span)
    except ConfigurationError as exc:
        parser.error(str(exc))


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    output_path = Path(opt.output).expanduser()
    if str(opt.output).endswith(("/", os.sep)):
        parser.error("--output must be a file path.")
    suffix = output_path.suffix
    expected_suffix = f".{image_format}"
    if suffix:
        if suffix.lower() != expected_suffix.lower():
            parser.error(f"--output extension {suffix} does not match --format {image_format}.")
    else:
        output_path = output_path.with_suffix(expected_suffix)

    return OutputConfig(
        image_path=output_path.resolve(),
        image_format=image_format,
        antialias=bool(opt.antialias),
    )


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    window = resolve_window(opt, parser)
    output_config = resolve_output_config(opt, parser)

    params = RenderParameters(
        window=window,
        image_size=opt.size,
        max_iterations=opt.max_iterations,
        escape_radius=opt.escape_radius,
        band_height=opt.band_height,
        workers=opt.workers,
    )
    try:
        params.validate()
    except ConfigurationError as exc:
        parser.error(str(exc))

    log("center %r, span %r, %dx%d, max iterations %d"
        % (window.center, window.span, params.image_size, params.image_size, params.max_iterations))

    def report(done, total):
        print("band {0} out of {1}".format(done, total), end='\r')

    raster = render_frame(params, device=DEVICE, progress=report)
    print()

    image = to_image(raster)
    if output_config.antialias:
        image = downsample(image, 2)

    try:
        write_image(image, output_config.image_path, output_config.image_format)
    except (OSError, ValueError, KeyError) as exc:
        print(f"Could not write {output_config.image_path}: {exc}", file=sys.stderr)
        return 1

    log("wrote %s (%dx%d)" % (output_config.image_path, image.size[0], image.size[1]))
    return 0


if __name__ == '__main__':
    sys.exit(main())
