"""Extract fingerprints from an image.

Command line entry point of the enhancement pipeline. The input image is padded
with a white border, optionally downsized, enhanced with oriented Gabor filters
and fused with the ridge-region mask so that the background turns white. The
result has the pixel dimensions of the input image.

Usage:
    fingerprint-enhance -i <input> [-o <output>] [options]

Example:
    fingerprint-enhance -i data/finger.png -o data/finger_enhanced.png --downsize -v

Exit status is 0 on success (or --help) and 1 on any fatal error; no output
file is written when the pipeline fails.
"""

import argparse
import logging
import sys
from pathlib import Path

from fingerprint_enhancement.config import (
    DEFAULT_MIN_COLS,
    DEFAULT_MIN_ROWS,
    DEFAULT_OUTPUT_IMAGE,
    PipelineConfig,
    load_config_file,
)
from fingerprint_enhancement.errors import ConfigurationError, FingerprintEnhancementError
from fingerprint_enhancement.pipeline import run


def setup_logging(log_level: str) -> None:
    """Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Suppress noisy third-party loggers unless in DEBUG mode
    if level > logging.DEBUG:
        logging.getLogger("PIL.PngImagePlugin").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="fingerprint-enhance",
        description="Extract fingerprints from an image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic usage, writes out.png
  fingerprint-enhance -i data/finger.png

  # Downsize large photographs and show the result
  fingerprint-enhance -i data/finger.jpg -o data/result.png --downsize --show

  # Raw engine output without mask-driven whitening, not saved
  fingerprint-enhance -i data/finger.png --no-postprocessing --no-save --show

  # Export intermediate images and a manifest for debugging
  fingerprint-enhance -i data/finger.png --export-artifacts data/debug/ --log-level DEBUG
        """,
    )

    parser.add_argument(
        "-i",
        "--input-image",
        "--input_image",
        dest="input_image",
        type=Path,
        default=None,
        help="Input image (required)",
    )
    parser.add_argument(
        "-o",
        "--output-image",
        "--output_image",
        dest="output_image",
        type=Path,
        default=None,
        help=f"Output image (default: {DEFAULT_OUTPUT_IMAGE})",
    )
    parser.add_argument(
        "-s",
        "--show",
        action="store_true",
        default=None,
        help="Show the result of the algorithm",
    )
    parser.add_argument(
        "-d",
        "--downsize",
        action="store_true",
        default=None,
        help="Downsize the image",
    )
    parser.add_argument(
        "-n",
        "--no-save",
        "--no_save",
        dest="no_save",
        action="store_true",
        default=None,
        help="Don't save the image",
    )
    parser.add_argument(
        "-p",
        "--no-postprocessing",
        "--no_postprocessing",
        dest="no_postprocessing",
        action="store_true",
        default=None,
        help="Don't perform the postprocessing",
    )
    parser.add_argument(
        "--min-rows",
        "--min_rows",
        dest="min_rows",
        type=int,
        default=None,
        help=f"Minimum number of rows (default: {DEFAULT_MIN_ROWS})",
    )
    parser.add_argument(
        "--min-cols",
        "--min_cols",
        dest="min_cols",
        type=int,
        default=None,
        help=f"Minimum number of columns (default: {DEFAULT_MIN_COLS})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Verbose output",
    )
    parser.add_argument(
        "--keep-downsized-geometry",
        dest="keep_downsized_geometry",
        action="store_true",
        default=None,
        help="Don't scale a downsized result back to the input size",
    )
    parser.add_argument(
        "--export-artifacts",
        dest="export_artifacts_dir",
        type=Path,
        default=None,
        help="Directory to export intermediate stage artifacts to",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with option defaults (command line flags take precedence)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    return parser


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Merge the optional YAML config file with the command line flags.

    Raises:
        ConfigurationError: If the input image is missing or an option is invalid
    """
    options = load_config_file(args.config) if args.config is not None else {}

    overrides = {
        "input_image": args.input_image,
        "output_image": args.output_image,
        "show": args.show,
        "downsize": args.downsize,
        "save": False if args.no_save else None,
        "postprocess": False if args.no_postprocessing else None,
        "min_rows": args.min_rows,
        "min_cols": args.min_cols,
        "verbose": args.verbose,
        "restore_geometry": False if args.keep_downsized_geometry else None,
        "export_artifacts_dir": args.export_artifacts_dir,
    }
    options.update({key: value for key, value in overrides.items() if value is not None})

    return PipelineConfig.from_mapping(options)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        logger.error(f"Bad usage: {e}")
        parser.print_usage(sys.stderr)
        return 1

    try:
        run(config)
    except FingerprintEnhancementError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
