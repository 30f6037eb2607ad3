import io
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from typing import AsyncGenerator

import pytest
import pytest_asyncio
import httpx
from httpx import AsyncClient

from main import app
from config import settings
from store import MetadataStore

class BytesStream:
    """Minimal async byte stream, the shape UploadFile exposes to the handler."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)

@pytest.fixture(scope="function")
def mock_upload_settings(tmp_path, monkeypatch):
    uploads_dir = tmp_path / "uploads_test"
    uploads_dir.mkdir()
    monkeypatch.setattr(settings, 'UPLOADS_DIR', uploads_dir)
    monkeypatch.setattr(settings, 'METADATA_FILE', tmp_path / "metadata_test.json")
    monkeypatch.setattr(settings, 'MAX_FILE_SIZE_BYTES', 1024)
    monkeypatch.setattr(settings, 'CHUNK_SIZE_BYTES', 64)
    monkeypatch.setattr(settings, 'AUTH_TOKEN', None)
    return settings

@pytest.fixture(scope="function")
def metadata_store(mock_upload_settings) -> MetadataStore:
    return MetadataStore(mock_upload_settings.METADATA_FILE)

@pytest_asyncio.fixture(scope="function")
async def async_client(mock_upload_settings) -> AsyncGenerator[AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testcloudnest") as client:
        yield client
