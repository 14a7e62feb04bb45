from __future__ import annotations

import logging
import math
from typing import Iterable

from ..models import ResolutionPair, SnapResult

logger = logging.getLogger(__name__)


class ImageTooSmallError(ValueError):
    """The source is smaller than its best-matching target; upscaling is not allowed."""

    def __init__(self, width: int, height: int, target: ResolutionPair) -> None:
        self.width = width
        self.height = height
        self.target = target
        super().__init__(f"Image too small, skipping: {width}x{height} < {target}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def choose_target(width: int, height: int, resolutions: Iterable[ResolutionPair]) -> ResolutionPair:
    """Return the candidate whose aspect ratio is closest to ``width / height``.

    Ties keep the first candidate in iteration order.
    """

    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {width}x{height}")
    ratio = width / height
    try:
        return min(resolutions, key=lambda pair: abs(ratio - pair.width / pair.height))
    except ValueError as exc:
        raise ValueError("Could not find a valid resolution target") from exc


def snap(width: int, height: int, resolutions: Iterable[ResolutionPair]) -> SnapResult:
    target = choose_target(width, height, resolutions)
    logger.info("%sx%s -> %s", width, height, target)

    if width < target.width or height < target.height:
        raise ImageTooSmallError(width, height, target)

    if width / height > target.aspect_ratio:
        # wider than the target: match heights, crop the sides
        resize_width = _round_half_up(width * target.height / height)
        resize_height = target.height
    else:
        resize_width = target.width
        resize_height = _round_half_up(height * target.width / width)

    if resize_width < 1 or resize_height < 1:
        raise ValueError(f"Invalid resize size: {resize_width}x{resize_height}")
    return SnapResult(target=target, resize_width=resize_width, resize_height=resize_height)
