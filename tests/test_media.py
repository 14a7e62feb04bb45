from __future__ import annotations

import hashlib
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image

from snapcrop.media.loader import ImageDecodeError, SourceLoader, decode_image
from snapcrop.media.writer import ContentAddressedWriter, OutputExistsError, content_digest


def _png_bytes(size: tuple[int, int] = (8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", size, (255, 0, 0, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_content_digest_defaults_to_256_bit_blake2b() -> None:
    digest = content_digest(b"abc")
    assert digest == hashlib.blake2b(b"abc", digest_size=32).hexdigest()
    assert len(digest) == 64


def test_content_digest_other_algorithms() -> None:
    assert content_digest(b"abc", "sha256") == hashlib.sha256(b"abc").hexdigest()


def test_writer_creates_output_dir(tmp_path: Path) -> None:
    output_dir = tmp_path / "nested" / "out"
    ContentAddressedWriter(output_dir)
    assert output_dir.is_dir()


def test_writer_derives_name_from_source_bytes(tmp_path: Path) -> None:
    writer = ContentAddressedWriter(tmp_path, image_format=".WEBP", algorithm="sha256")
    target = writer.target_for(b"source")
    assert target == tmp_path / f"{hashlib.sha256(b'source').hexdigest()}.webp"
    assert writer.pil_format == "WEBP"


def test_writer_refuses_to_overwrite(tmp_path: Path) -> None:
    writer = ContentAddressedWriter(tmp_path)
    target = writer.target_for(b"data")
    image = Image.new("RGB", (4, 4))

    writer.write(image, target)

    with pytest.raises(OutputExistsError):
        writer.ensure_absent(target)
    with pytest.raises(OutputExistsError):
        writer.write(image, target)


@pytest.mark.parametrize("image_format", ["txt", "nope"])
def test_writer_rejects_unknown_format(tmp_path: Path, image_format: str) -> None:
    with pytest.raises(ValueError):
        ContentAddressedWriter(tmp_path, image_format=image_format)


def test_writer_rejects_unknown_hash(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        ContentAddressedWriter(tmp_path, algorithm="crc-nothing")


def test_decode_image_returns_rgb() -> None:
    image = decode_image(_png_bytes((10, 6)))
    assert image.mode == "RGB"
    assert image.size == (10, 6)


def test_decode_image_rejects_garbage() -> None:
    with pytest.raises(ImageDecodeError):
        decode_image(b"\x00\x01garbage")


def test_loader_reads_local_file(tmp_path: Path) -> None:
    path = tmp_path / "image.png"
    path.write_bytes(b"raw")
    assert SourceLoader().read_bytes(str(path)) == b"raw"


def test_loader_downloads_with_retry() -> None:
    calls: list[str] = []
    payload = _png_bytes()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, content=payload)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    loader = SourceLoader(retries=2, client=client)

    assert loader.read_bytes("https://example.com/a.png") == payload
    assert calls == ["https://example.com/a.png", "https://example.com/a.png"]


def test_loader_gives_up_after_retries() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(404)

    loader = SourceLoader(retries=1, client=httpx.Client(transport=httpx.MockTransport(handler)))

    with pytest.raises(RuntimeError) as excinfo:
        loader.read_bytes("http://example.com/missing.png")
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)
    assert len(calls) == 2


def test_failed_write_leaves_no_partial_output(
    tmp_path: Path, full_disk: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    writer = ContentAddressedWriter(tmp_path)
    target = writer.target_for(b"data")
    image = Image.new("RGB", (64, 64), "white")

    with pytest.raises(OSError):
        writer.write(image, target)
    assert not target.exists()

    monkeypatch.undo()
    writer.ensure_absent(target)
    assert writer.write(image, target).stat().st_size > 0
