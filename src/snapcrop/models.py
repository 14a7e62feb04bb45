from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional


@dataclass(frozen=True, slots=True, order=True)
class ResolutionPair:
    """A candidate output resolution."""

    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


class ResolutionSet:
    """Deduplicated candidate resolutions, sorted descending.

    Built once per run and shared read-only between jobs.
    """

    __slots__ = ("_pairs",)

    def __init__(self, pairs: Iterable[ResolutionPair]) -> None:
        self._pairs: tuple[ResolutionPair, ...] = tuple(sorted(set(pairs), reverse=True))

    def __iter__(self) -> Iterator[ResolutionPair]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __getitem__(self, index: int) -> ResolutionPair:
        return self._pairs[index]

    def __contains__(self, item: object) -> bool:
        return item in self._pairs

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolutionSet):
            return NotImplemented
        return self._pairs == other._pairs

    def __hash__(self) -> int:
        return hash(self._pairs)

    def __repr__(self) -> str:
        return f"ResolutionSet([{', '.join(str(pair) for pair in self._pairs)}])"

    @property
    def pairs(self) -> tuple[ResolutionPair, ...]:
        return self._pairs


@dataclass(frozen=True, slots=True)
class SnapResult:
    """Chosen target plus the aspect-preserving size to resize to before cropping."""

    target: ResolutionPair
    resize_width: int
    resize_height: int


class JobStatus(enum.Enum):
    WRITTEN = "written"
    SKIPPED_EXISTS = "skipped_exists"
    TOO_SMALL = "too_small"
    FAILED = "failed"


@dataclass(slots=True)
class JobResult:
    """Outcome of processing a single source image."""

    source: str
    status: JobStatus
    output: Optional[Path] = None
    error: Optional[str] = None


@dataclass(slots=True)
class BatchReport:
    results: List[JobResult] = field(default_factory=list)

    def add(self, result: JobResult) -> None:
        self.results.append(result)

    def count(self, status: JobStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def total(self) -> int:
        return len(self.results)

    def summary(self) -> str:
        parts = [f"{status.value}={self.count(status)}" for status in JobStatus]
        return f"processed {self.total} image(s): " + ", ".join(parts)
