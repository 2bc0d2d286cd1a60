"""Pytest fixtures for cloudup tests."""
import time
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from cloudup.core.api import ApiClient, ApiResponse, HttpResponse
from cloudup.core.config import RetryConfig, UploaderConfig
from cloudup.core.errors import Ok
from cloudup.core.policy import Policy
from cloudup.core.session import UploadContext
from cloudup.core.upload.models import LocalFile


@pytest.fixture
def config():
    """Configuration with instant retries."""
    return UploaderConfig(
        api_base='https://drive.test/api/v3/',
        retry=RetryConfig(base_delay=0),
    )


@pytest.fixture
def client(config):
    """API client whose network methods are mocks."""
    client = ApiClient(config)
    client.send = AsyncMock()
    client.call = AsyncMock()
    return client


@pytest.fixture
def local_policy():
    """Unrestricted policy on the service's own storage."""
    return Policy(id=1, type='local', name='Default')


@pytest.fixture
def make_file(tmp_path):
    """Writes ``content`` to a temporary file and describes it."""
    def _make(content: bytes = b'0123456789abcdef', name: str = 'sample.bin') -> LocalFile:
        path = tmp_path / name
        path.write_bytes(content)
        return LocalFile.from_path(path)
    return _make


@pytest.fixture
def envelope():
    """Builds ``Ok(ApiResponse)`` as returned by ``ApiClient.call``."""
    def _envelope(code: int = 0, msg: str = '', data=None, error=None):
        return Ok(ApiResponse(code=code, msg=msg, error=error, data=data))
    return _envelope


@pytest.fixture
def http():
    """Builds ``Ok(HttpResponse)`` as returned by ``ApiClient.send``."""
    def _http(status: int = 200, body: bytes = b'', headers=None, url: str = 'https://bucket.test/obj'):
        return Ok(HttpResponse(url=url, status=status, reason='', headers=headers or {}, body=body))
    return _http


@pytest.fixture
def session_data():
    """Session creation ``data`` as sent by the service."""
    def _data(chunk_size: int = 4, **extra):
        data = {
            'sessionID': 'sess-1',
            'chunkSize': chunk_size,
            'expires': int(time.time()) + 3600,
        }
        data.update(extra)
        return data
    return _data


@pytest.fixture
def make_context():
    """Builds an active upload context for adapter tests."""
    def _make(policy_type: str = 's3', total_chunks: int = 2, file_size: int = 8, **fields) -> UploadContext:
        values = {
            'session_id': 'sess-1',
            'policy': Policy(id=3, type=policy_type),
            'chunk_size': 4,
            'total_chunks': total_chunks,
            'file_size': file_size,
            'task_key': 'task',
        }
        values.update(fields)
        return UploadContext(**values)
    return _make


@pytest.fixture
def sample_path(tmp_path) -> Path:
    """Temporary file with 26 known bytes."""
    path = tmp_path / 'letters.txt'
    path.write_bytes(b'abcdefghijklmnopqrstuvwxyz')
    return path
