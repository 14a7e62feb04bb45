from __future__ import annotations

import argparse
import contextlib
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm.contrib.logging import logging_redirect_tqdm

from ..image_processing.batch import BatchProcessor, read_image_list
from ..image_processing.pipeline import BACKENDS, ResizeCropper, SnapCropPipeline
from ..media.writer import ContentAddressedWriter
from ..models import BatchReport
from ..resolutions.spec_parser import format_resolutions, load_resolution_set

logger = logging.getLogger("snapcrop")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_EXAMPLES = """\
Examples:

Crop images to SDXL training resolutions
    snapcrop out --res 1024x1024,1152x896,896x1152,1216x832,832x1216,1344x768,768x1344,1536x640,640x1536

Crop images to the closest resolution of the provided 1:1 sizes
    snapcrop out --res 1024,768,512

Crop images to the closest 1:1 resolution between 512x512 and 1024x1024 with a step of 64
    snapcrop out --res 512:1024:64

Crop images with a height of 512 and a width between 512 and 1024 with a step of 64
    snapcrop out --res 512:1024:64x512

Crop images to a resolution in either orientation (512x768 and 768x512)
    snapcrop out --res [512x768]

Combine freely
    snapcrop out --res [512x768],1024,512:768:64x768:1024:32
"""


@dataclass(slots=True)
class LoggingConfig:
    verbose: bool = False
    log_path: Optional[Path] = None


@dataclass(slots=True)
class RunConfig:
    output_path: Path
    resolutions: str
    input_file: Optional[Path] = None
    image_format: str = "png"
    workers: Optional[int] = None
    backend: str = "pillow"
    hash_algorithm: str = "blake2b"
    show_progress: bool = True
    dry_run: bool = False
    log_config: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "RunConfig":
        return cls(
            output_path=args.output_path,
            resolutions=args.resolutions,
            input_file=args.input_file,
            image_format=args.image_format,
            workers=args.jobs,
            backend=args.backend,
            hash_algorithm=args.hash_algorithm,
            show_progress=not args.no_progress,
            dry_run=args.dry_run,
            log_config=LoggingConfig(verbose=args.verbose, log_path=args.log_path),
        )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="snapcrop",
        description="Crop all your images with snapping",
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("output_path", type=Path, help="Output dir path for images")
    parser.add_argument("--res", dest="resolutions", required=True, help="List of resolutions")
    parser.add_argument(
        "-i", "--input-file", type=Path, default=None, help="File list path, stdin used otherwise"
    )
    parser.add_argument("-l", "--log", dest="log_path", type=Path, default=None, help="Output debug info to log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Output debug info to stderr")
    parser.add_argument(
        "-f", "--format", dest="image_format", default="png", help="Image format to save files with"
    )
    parser.add_argument("-j", "--jobs", type=int, default=None, help="Worker threads (default: CPU count)")
    parser.add_argument("--backend", choices=BACKENDS, default="pillow", help="Resize backend")
    parser.add_argument(
        "--hash",
        dest="hash_algorithm",
        choices=("blake2b", "sha256"),
        default="blake2b",
        help="Digest used to name output files",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only parse the resolutions and print them without processing images",
    )
    return parser.parse_args(argv)


def configure_logging(config: LoggingConfig) -> List[logging.Handler]:
    """Attach handlers to the package logger; returns them so callers can detach."""

    formatter = logging.Formatter(_LOG_FORMAT)
    handlers: List[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if config.verbose else logging.WARNING)
    console.setFormatter(formatter)
    handlers.append(console)

    if config.log_path is not None:
        file_handler = logging.FileHandler(config.log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logger.setLevel(logging.DEBUG)
    for handler in handlers:
        logger.addHandler(handler)
    return handlers


def _initialize_batch(config: RunConfig) -> BatchProcessor:
    resolutions = load_resolution_set(config.resolutions)
    if config.dry_run:
        print(format_resolutions(resolutions))
        raise SystemExit(0)

    writer = ContentAddressedWriter(
        config.output_path,
        image_format=config.image_format,
        algorithm=config.hash_algorithm,
    )
    pipeline = SnapCropPipeline(
        resolutions=resolutions,
        writer=writer,
        cropper=ResizeCropper(config.backend),
    )
    return BatchProcessor(pipeline, workers=config.workers, show_progress=config.show_progress)


def run(config: RunConfig) -> BatchReport:
    try:
        batch = _initialize_batch(config)
    except (ValueError, OSError) as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    try:
        sources = read_image_list(config.input_file)
    except OSError as exc:
        logger.error("Failed to read image list: %s", exc)
        raise SystemExit(1) from exc

    # the tqdm handler ignores the console level, so only reroute when it is DEBUG anyway
    if config.log_config.verbose and config.show_progress:
        redirect = logging_redirect_tqdm(loggers=[logger])
    else:
        redirect = contextlib.nullcontext()
    with redirect:
        report = batch.run(sources)
    logger.info(report.summary())
    return report


def main(argv: Optional[Sequence[str]] = None) -> None:
    config = RunConfig.from_args(parse_args(argv))
    try:
        handlers = configure_logging(config.log_config)
    except OSError as exc:
        logger.error("Failed to open log file: %s", exc)
        raise SystemExit(1) from exc
    try:
        run(config)
    finally:
        for handler in handlers:
            logger.removeHandler(handler)
            handler.close()


if __name__ == "__main__":
    main()
