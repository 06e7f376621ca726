"""Shared pytest fixtures for PromptCanvas tests."""

import base64
import shutil
import tempfile
import threading
import time
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from promptcanvas.api.main import create_app
from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.stores import PromptRecord, SQLitePromptStore

# A 1x1 transparent PNG.
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class FakeImageModel:
    """In-process stand-in for the Bedrock model client.

    Each call returns ``{"artifacts": [{"base64": "image-<seed>"}]}`` unless
    a response override or error is configured.  Calls are recorded so tests
    can inspect the request bodies.

    Attributes:
        delays: Sleep in seconds before answering, keyed by request seed.
        responses: Response overrides, keyed by request seed.
        error: Exception raised by every call when set.
    """

    def __init__(self, delays=None, responses=None, error=None):
        self.delays = delays or {}
        self.responses = responses or {}
        self.error = error
        self.bodies: list[dict] = []
        self._lock = threading.Lock()

    def invoke(self, body: dict):
        seed = body["seed"]
        with self._lock:
            self.bodies.append(body)
        if self.error is not None:
            raise self.error
        time.sleep(self.delays.get(seed, 0))
        if seed in self.responses:
            return self.responses[seed]
        return {"artifacts": [{"base64": f"image-{seed}"}]}


class FailingStore:
    """Prompt store whose every operation raises."""

    def __init__(self, error: Exception):
        self.error = error

    def insert(self, record):
        raise self.error

    def fetch_page(self, offset, limit):
        raise self.error

    def count(self):
        raise self.error


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
def test_config(temp_dir: Path) -> PromptCanvasConfig:
    """Create a test configuration with a temporary data directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        PromptCanvasConfig instance for testing
    """
    return PromptCanvasConfig(
        _env_file=None,
        data_dir=str(temp_dir / "data"),
        store_backend="sqlite",
        aws_region="us-east-1",
    )


@pytest.fixture
def sqlite_store(test_config: PromptCanvasConfig) -> SQLitePromptStore:
    """SQLite prompt store in the temporary data directory."""
    return SQLitePromptStore(test_config.sqlite_path)


@pytest.fixture
def make_model():
    """Return the fake model class so tests can configure delays and errors."""
    return FakeImageModel


@pytest.fixture
def make_failing_store():
    """Return the always-failing store class."""
    return FailingStore


@pytest.fixture
def fake_model() -> FakeImageModel:
    """Model client that returns one artifact per call."""
    return FakeImageModel()


@pytest.fixture
def test_client(test_config, fake_model, sqlite_store) -> Generator[TestClient, None, None]:
    """TestClient wired to the fake model and the temporary SQLite store.

    The client is used as a context manager so the lifespan runs and every
    request shares one event loop.
    """
    app = create_app(test_config, image_model=fake_model, prompt_store=sqlite_store)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def drain_history():
    """Return a helper that waits for pending history writes of a client."""

    def _drain(client: TestClient) -> None:
        client.portal.call(client.app.state.history_recorder.drain)

    return _drain


@pytest.fixture
def sample_history(sqlite_store: SQLitePromptStore) -> list[PromptRecord]:
    """Insert 25 prompt records, oldest first.

    Returns:
        The inserted records in insertion order; ``records[-1]`` is newest.
    """
    return [
        sqlite_store.insert(
            PromptRecord(
                prompt_text=f"Prompt number {i:02d}",
                style="anime" if i % 2 else None,
                aspect_ratio="16:9" if i % 3 == 0 else "1:1",
                reference_image_used=i % 5 == 0,
            )
        )
        for i in range(1, 26)
    ]


@pytest.fixture
def png_data_url() -> str:
    """A valid PNG reference image as a data URL."""
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
