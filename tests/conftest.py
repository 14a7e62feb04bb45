from __future__ import annotations

import errno
from pathlib import Path

import pytest


class _FullDiskHandle:
    """Writes half of the data, then fails like a full disk."""

    def __init__(self, handle) -> None:
        self._handle = handle

    def __enter__(self) -> "_FullDiskHandle":
        return self

    def __exit__(self, *exc_info) -> bool:
        self._handle.close()
        return False

    def write(self, data: bytes) -> int:
        self._handle.write(data[: len(data) // 2])
        raise OSError(errno.ENOSPC, "No space left on device")


@pytest.fixture
def full_disk(monkeypatch: pytest.MonkeyPatch) -> None:
    real_open = Path.open

    def failing_open(self: Path, mode: str = "r", *args, **kwargs):
        handle = real_open(self, mode, *args, **kwargs)
        if mode == "xb":
            return _FullDiskHandle(handle)
        return handle

    monkeypatch.setattr(Path, "open", failing_open)
