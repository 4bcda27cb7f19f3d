"""Shared pytest fixtures for Dreamjob tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from dreamjob.api.job_store import MemoryJobStore
from dreamjob.api.main import create_app
from dreamjob.core.config import DreamjobConfig
from dreamjob.core.stability_client import StabilityClient

# Base64 payload returned by the fake provider ("generated").
FAKE_IMAGE_B64 = "Z2VuZXJhdGVk"


def make_image_bytes(
    size: tuple[int, int] = (64, 48),
    fmt: str = "JPEG",
    mode: str = "RGB",
    colour=(200, 120, 40),
) -> bytes:
    """Encode a solid-colour image in memory.

    Args:
        size: ``(width, height)`` of the image.
        fmt: Pillow format name.
        mode: Pillow image mode.
        colour: Fill colour matching ``mode``.

    Returns:
        Encoded image bytes.
    """
    buffer = io.BytesIO()
    Image.new(mode, size, colour).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config() -> DreamjobConfig:
    """Configuration with a real-looking key and a small target size.

    Returns:
        DreamjobConfig instance for testing
    """
    return DreamjobConfig(
        _env_file=None,
        stability_api_key="sk-test-key",
        target_width=128,
        target_height=128,
        provider_timeout=5,
        job_ttl_seconds=60,
    )


@pytest.fixture
def fake_client() -> MagicMock:
    """Provider client double that always returns :data:`FAKE_IMAGE_B64`."""
    client = MagicMock(spec=StabilityClient)
    client.generate.return_value = FAKE_IMAGE_B64
    return client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def job_store(clock: FakeClock) -> MemoryJobStore:
    return MemoryJobStore(ttl_seconds=60, clock=clock)


@pytest.fixture
def test_client(
    test_config: DreamjobConfig, fake_client: MagicMock, job_store: MemoryJobStore
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the fake provider and an isolated job store."""
    app = create_app(test_config, client=fake_client, store=job_store)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes((320, 240))


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes((100, 300), fmt="PNG", mode="RGBA", colour=(0, 128, 255, 255))


@pytest.fixture
def image_factory():
    """Expose :func:`make_image_bytes` to tests."""
    return make_image_bytes
