from __future__ import annotations

import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from tqdm import tqdm

from ..models import BatchReport
from .pipeline import SnapCropPipeline

logger = logging.getLogger(__name__)

_BAR_FORMAT = "{l_bar}{bar:40}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]"


def read_image_list(path: Optional[Path] = None, stream: Optional[TextIO] = None) -> List[str]:
    """Read one image source per line from *path*, or from *stream* (stdin by default)."""

    if path is not None:
        lines = path.read_text(encoding="utf-8").splitlines()
    else:
        lines = (stream or sys.stdin).read().splitlines()
    return [line.strip() for line in lines if line.strip()]


class BatchProcessor:
    """Fan jobs out over a thread pool; a failed image never stops the batch."""

    def __init__(
        self,
        pipeline: SnapCropPipeline,
        workers: Optional[int] = None,
        show_progress: bool = True,
    ) -> None:
        if workers is not None and workers < 1:
            raise ValueError(f"workers must be positive, got {workers}")
        self.pipeline = pipeline
        self.workers = workers or os.cpu_count() or 1
        self.show_progress = show_progress

    def run(self, sources: Iterable[str]) -> BatchReport:
        source_list = list(sources)
        report = BatchReport()
        logger.debug("Processing %s image(s) with %s worker(s)", len(source_list), self.workers)
        with tqdm(
            total=len(source_list),
            unit="img",
            bar_format=_BAR_FORMAT,
            disable=not self.show_progress,
        ) as progress, ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [pool.submit(self.pipeline.process, source) for source in source_list]
            for future in as_completed(futures):
                report.add(future.result())
                progress.update(1)
        return report
