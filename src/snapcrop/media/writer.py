from __future__ import annotations

import hashlib
import logging
from io import BytesIO
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)


class OutputExistsError(FileExistsError):
    """The content-addressed output is already present; the source was processed before."""


def content_digest(data: bytes, algorithm: str = "blake2b") -> str:
    """Hex digest of the raw source bytes."""

    if algorithm == "blake2b":
        return hashlib.blake2b(data, digest_size=32).hexdigest()
    return hashlib.new(algorithm, data).hexdigest()


def resolve_format(extension: str) -> str:
    """Map a file extension such as ``png`` or ``.jpg`` to a Pillow format name."""

    suffix = "." + extension.lower().lstrip(".")
    image_format = Image.registered_extensions().get(suffix)
    if image_format is None or image_format not in Image.SAVE:
        raise ValueError(f"Unsupported output format: {extension}")
    return image_format


class ContentAddressedWriter:
    """Store processed images under a name derived from the source bytes."""

    def __init__(self, output_dir: Path, image_format: str = "png", algorithm: str = "blake2b") -> None:
        self.output_dir = output_dir
        self.extension = image_format.lower().lstrip(".")
        self.pil_format = resolve_format(self.extension)
        if algorithm != "blake2b" and algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")
        self.algorithm = algorithm
        output_dir.mkdir(parents=True, exist_ok=True)

    def filename_for(self, data: bytes) -> str:
        return f"{content_digest(data, self.algorithm)}.{self.extension}"

    def target_for(self, data: bytes) -> Path:
        return self.output_dir / self.filename_for(data)

    def ensure_absent(self, target: Path) -> None:
        if target.exists():
            raise OutputExistsError(f"Image already exists in output dir, skipping: {target.name}")

    def write(self, image: Image.Image, target: Path) -> Path:
        buffer = BytesIO()
        image.save(buffer, format=self.pil_format)
        try:
            handle = target.open("xb")
        except FileExistsError as exc:
            raise OutputExistsError(
                f"Image already exists in output dir, skipping: {target.name}"
            ) from exc
        try:
            with handle:
                handle.write(buffer.getvalue())
        except OSError:
            # a partial file would be mistaken for a finished output on the next run
            target.unlink(missing_ok=True)
            raise
        logger.debug("Stored %s", target)
        return target
