from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image

from ..media.loader import SourceLoader, decode_image
from ..media.writer import ContentAddressedWriter, OutputExistsError
from ..models import JobResult, JobStatus, ResolutionSet, SnapResult
from .snapping import ImageTooSmallError, snap

try:
    import cv2
except ImportError as exc:  # pragma: no cover - required dependency guard
    raise RuntimeError("OpenCV is required; install opencv-python-headless") from exc

logger = logging.getLogger(__name__)

BACKENDS = ("pillow", "opencv")


class ResizeCropper:
    """Lanczos resize to the snapped intermediate size, then a centered crop to the target."""

    def __init__(self, backend: str = "pillow") -> None:
        if backend not in BACKENDS:
            raise ValueError(f"Unknown resize backend: {backend}")
        self.backend = backend

    def resize_and_crop(self, image: Image.Image, result: SnapResult) -> Image.Image:
        rgb = image.convert("RGB")
        if self.backend == "opencv":
            return self._opencv(rgb, result)
        return self._pillow(rgb, result)

    def _pillow(self, image: Image.Image, result: SnapResult) -> Image.Image:
        resized = image.resize((result.resize_width, result.resize_height), Image.Resampling.LANCZOS)
        return resized.crop(_crop_box(result))

    def _opencv(self, image: Image.Image, result: SnapResult) -> Image.Image:
        np_img = np.asarray(image)
        resized = cv2.resize(
            np_img,
            (result.resize_width, result.resize_height),
            interpolation=cv2.INTER_LANCZOS4,
        )
        left, top, right, bottom = _crop_box(result)
        cropped = np.ascontiguousarray(resized[top:bottom, left:right])
        return Image.fromarray(cropped, "RGB")


def _crop_box(result: SnapResult) -> tuple[int, int, int, int]:
    target = result.target
    left = (result.resize_width - target.width) // 2
    top = (result.resize_height - target.height) // 2
    return left, top, left + target.width, top + target.height


class SnapCropPipeline:
    """Runs one source through read, dedup check, decode, snap, resize/crop and write."""

    def __init__(
        self,
        resolutions: ResolutionSet,
        writer: ContentAddressedWriter,
        loader: SourceLoader | None = None,
        cropper: ResizeCropper | None = None,
    ) -> None:
        self.resolutions = resolutions
        self.writer = writer
        self.loader = loader or SourceLoader()
        self.cropper = cropper or ResizeCropper()

    def process(self, source: str) -> JobResult:
        try:
            output = self._process(source)
        except OutputExistsError as exc:
            return self._failed(source, JobStatus.SKIPPED_EXISTS, exc)
        except ImageTooSmallError as exc:
            return self._failed(source, JobStatus.TOO_SMALL, exc)
        except Exception as exc:  # noqa: BLE001 - a bad image must not stop the batch
            return self._failed(source, JobStatus.FAILED, exc)
        return JobResult(source=source, status=JobStatus.WRITTEN, output=output)

    def _process(self, source: str) -> Path:
        data = self.loader.read_bytes(source)
        target = self.writer.target_for(data)
        self.writer.ensure_absent(target)

        image = decode_image(data)
        width, height = image.size
        result = snap(width, height, self.resolutions)
        try:
            cropped = self.cropper.resize_and_crop(image, result)
        except (ValueError, OSError, cv2.error) as exc:
            raise RuntimeError(f"Failed to resize image: {exc}") from exc
        return self.writer.write(cropped, target)

    @staticmethod
    def _failed(source: str, status: JobStatus, exc: Exception) -> JobResult:
        logger.debug("%s: %s", source, exc)
        return JobResult(source=source, status=status, error=str(exc))
