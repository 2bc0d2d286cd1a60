"""Tests for the Uploader facade."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from cloudup import Uploader
from cloudup.core.config import RetryConfig, UploaderConfig
from cloudup.core.errors import Err, ErrorKind, Ok, UploaderError, factories
from cloudup.core.session import SQLiteContextStore


@pytest.fixture
def uploader(client):
    """Uploader over the mocked client."""
    return Uploader(client=client)


class TestUploader:
    """Test suite for Uploader."""

    @pytest.mark.asyncio
    async def test_local_upload(self, uploader, client, make_file, local_policy, envelope, session_data):
        """Test a local policy upload end to end through the service API."""
        file = make_file(b'0123456789')

        async def respond(method, path, kind, **kwargs):
            if path == '/session':
                return envelope(data=session_data(chunk_size=4))
            return envelope()

        client.call.side_effect = respond

        async with uploader:
            result = await uploader.upload(file.path, local_policy, '/docs')

        assert result.session_id == 'sess-1'
        assert result.total_chunks == 3
        assert result.file_name == 'sample.bin'
        chunk_paths = [c.args[1] for c in client.call.await_args_list[1:]]
        assert chunk_paths == ['/session/sess-1/chunk/0', '/session/sess-1/chunk/1', '/session/sess-1/chunk/2']

    @pytest.mark.asyncio
    async def test_upload_raises(self, uploader, make_file):
        """Test failures surface as UploaderError."""
        with pytest.raises(UploaderError) as exc_info:
            await uploader.upload(make_file().path, None)

        assert exc_info.value.kind == ErrorKind.NO_POLICY_SELECTED

    @pytest.mark.asyncio
    async def test_try_upload_returns_error(self, uploader, make_file, local_policy, client):
        """Test try_upload reports instead of raising."""
        client.call.return_value = Err(factories.http_error('https://drive.test', detail='refused'))

        result = await uploader.try_upload(make_file().path, local_policy)

        assert not result.is_ok
        assert result.error.kind == ErrorKind.HTTP_REQUEST_FAILED

    @pytest.mark.asyncio
    async def test_missing_file(self, uploader, local_policy, tmp_path):
        """Test missing file raises before any upload."""
        with pytest.raises(FileNotFoundError):
            await uploader.try_upload(tmp_path / 'missing.bin', local_policy)

    @pytest.mark.asyncio
    async def test_duplicate_backoff(self, client, make_file, local_policy):
        """Test duplicate tasks are re-checked along the configured delays."""
        config = UploaderConfig(retry=RetryConfig(base_delay=0, duplicate_task_delays=(0, 0)))
        uploader = Uploader(config, client=client)
        duplicate = Err(factories.task_duplicated('key'))
        uploader.coordinator.upload = AsyncMock(side_effect=[duplicate, duplicate, Ok('done')])

        result = await uploader.try_upload(make_file().path, local_policy)

        assert result.value == 'done'
        assert uploader.coordinator.upload.await_count == 3

    @pytest.mark.asyncio
    async def test_duplicate_without_backoff(self, uploader, make_file, local_policy):
        """Test duplicate tasks fail at once by default."""
        uploader.coordinator.upload = AsyncMock(return_value=Err(factories.task_duplicated('key')))

        result = await uploader.try_upload(make_file().path, local_policy)

        assert result.error.kind == ErrorKind.PROCESSING_TASK_DUPLICATED
        uploader.coordinator.upload.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel(self, uploader, make_file, local_policy):
        """Test cancel reaches running uploads."""
        async def wait_for_cancel(file, policy, destination, token):
            await token.sleep(10)
            return Err(factories.request_canceled(token.reason), caller_canceled=True)

        uploader.coordinator.upload = AsyncMock(side_effect=wait_for_cancel)
        asyncio.get_running_loop().call_later(0.05, uploader.cancel)

        result = await asyncio.wait_for(uploader.try_upload(make_file().path, local_policy), timeout=5)

        assert result.caller_canceled

    @pytest.mark.asyncio
    async def test_stored_contexts_and_discard(self, client, make_file, local_policy, make_context,
                                               envelope, tmp_path):
        """Test interrupted uploads can be listed and discarded."""
        store = SQLiteContextStore('uploads', base_path=tmp_path)
        ctx = make_context()
        store.save(ctx.task_key, ctx.to_json())
        client.call.return_value = envelope()

        async with Uploader(client=client, store=store) as uploader:
            stored = uploader.stored_contexts()
            assert [c.session_id for c in stored] == ['sess-1']

            result = await uploader.discard(stored[0])

            assert result.is_ok
            assert uploader.stored_contexts() == []
