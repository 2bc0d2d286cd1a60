"""Tests for the chunk upload coordinator."""
import asyncio
from pathlib import Path

import pytest

from cloudup.core.api import ApiResponse, CancellationToken
from cloudup.core.config import RetryConfig, UploaderConfig
from cloudup.core.errors import Err, ErrorKind, Ok, RetryTable, factories
from cloudup.core.policy import Policy
from cloudup.core.session import MemoryContextStore, SessionManager, TaskIdentity
from cloudup.core.upload.adapters import BaseAdapter
from cloudup.core.upload.coordinator import UploadCoordinator
from cloudup.core.upload.models import LocalFile

CONTENT = b'0123456789abcdef'


def _busy(index):
    """Transient service failure for chunk ``index``."""
    return Err(factories.api_error(
        ErrorKind.LOCAL_CHUNK_UPLOAD_FAILED, ApiResponse(code=-1, msg='busy'), index
    ))


def _rejected(index):
    """Final service rejection for chunk ``index``."""
    return Err(factories.api_error(
        ErrorKind.LOCAL_CHUNK_UPLOAD_FAILED, ApiResponse(code=40001, msg='bad chunk'), index
    ))


class FakeAdapter(BaseAdapter):
    """Adapter replaying scripted outcomes per chunk."""

    name = 'fake'

    def __init__(self, client, failures=None, sequential=True, concurrency=1,
                 single_request=False, finish_results=None):
        super().__init__(client)
        self.sequential = sequential
        self.concurrency = concurrency
        self.single_request = single_request
        self.failures = {index: list(results) for index, results in (failures or {}).items()}
        self.finish_results = list(finish_results or [])
        self.calls = []
        self.finished = 0
        self.finished_ctx = None
        self.active = 0
        self.peak = 0
        self.gate = None
        self.delay = 0

    async def upload_chunk(self, ctx, chunk, data, token=None):
        self.calls.append((chunk.index, data))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1

        pending = self.failures.get(chunk.index)
        if pending:
            return pending.pop(0)
        return Ok(f"tag-{chunk.index}")

    async def finish(self, ctx, token=None):
        self.finished += 1
        self.finished_ctx = ctx
        if self.finish_results:
            return self.finish_results.pop(0)
        return Ok(ApiResponse(code=0, data={'id': 'file-1'}))

    def attempts(self, index):
        return sum(1 for i, _ in self.calls if i == index)


@pytest.fixture
def store():
    return MemoryContextStore()


@pytest.fixture
def sessions(client, store):
    return SessionManager(client, store)


@pytest.fixture
def session_created(client, envelope, session_data):
    """Service answers session creation with a 4 byte chunk size."""
    def _respond(chunk_size=4, **extra):
        client.call.return_value = envelope(data=session_data(chunk_size=chunk_size, **extra))
    return _respond


def _coordinator(client, sessions, adapter, config=None, **kwargs):
    return UploadCoordinator(
        client,
        sessions,
        config=config,
        adapter_factory=lambda policy, api: Ok(adapter),
        **kwargs
    )


class TestUpload:
    """Test suite for a full upload."""

    @pytest.mark.asyncio
    async def test_uploads_every_chunk(self, client, sessions, store, make_file, local_policy, session_created):
        """Test chunks are uploaded in order, then finished."""
        session_created()
        adapter = FakeAdapter(client)
        file = make_file(CONTENT)

        result = await _coordinator(client, sessions, adapter).upload(file, local_policy, '/')

        assert result.is_ok
        upload = result.value
        assert upload.session_id == 'sess-1'
        assert upload.total_chunks == 4
        assert upload.retries == 0
        assert not upload.resumed
        assert upload.response == {'id': 'file-1'}
        assert [i for i, _ in adapter.calls] == [0, 1, 2, 3]
        assert b''.join(data for _, data in adapter.calls) == CONTENT
        assert adapter.finished == 1
        assert store.all() == {}

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, client, sessions, make_file, local_policy, session_created):
        """Test chunk 2 failing twice is retried and acknowledged once."""
        session_created()
        adapter = FakeAdapter(client, failures={2: [_busy(2), _busy(2)]})
        acknowledged = []

        def on_progress(progress):
            acknowledged.append(progress.uploaded_chunks)

        coordinator = _coordinator(client, sessions, adapter, progress_callback=on_progress)
        result = await coordinator.upload(make_file(CONTENT), local_policy, '/')

        assert result.is_ok
        assert result.value.retries == 2
        assert adapter.attempts(2) == 3
        assert [adapter.attempts(i) for i in (0, 1, 3)] == [1, 1, 1]
        retried = [data for i, data in adapter.calls if i == 2]
        assert retried == [b'89ab'] * 3
        assert acknowledged == [1, 2, 3, 4]
        assert adapter.finished_ctx.acknowledged == {0, 1, 2, 3}
        assert adapter.finished_ctx.parts == {i: f"tag-{i}" for i in range(4)}

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted(self, client, sessions, make_file, local_policy, session_created):
        """Test the final error is returned after max attempts."""
        session_created()
        adapter = FakeAdapter(client, failures={0: [_busy(0)] * 5})

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.error.kind == ErrorKind.LOCAL_CHUNK_UPLOAD_FAILED
        assert result.error.response_code == -1
        assert adapter.attempts(0) == 3
        assert adapter.finished == 0

    @pytest.mark.asyncio
    async def test_business_error_not_retried(self, client, sessions, make_file, local_policy, session_created):
        """Test non-transient codes fail at once."""
        session_created()
        adapter = FakeAdapter(client, failures={1: [_rejected(1)]})

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.error.response_code == 40001
        assert adapter.attempts(1) == 1
        assert [i for i, _ in adapter.calls] == [0, 1]

    @pytest.mark.asyncio
    async def test_transform_error_retried_once(self, client, sessions, make_file, local_policy, session_created):
        """Test unparseable responses get a single retry."""
        session_created()
        garbled = Err(factories.transform_error('<x', 'invalid XML'))
        adapter = FakeAdapter(client, failures={0: [garbled] * 5})

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.error.kind == ErrorKind.FAILED_TRANSFORM_RESPONSE
        assert adapter.attempts(0) == 2

    @pytest.mark.asyncio
    async def test_finish_failure(self, client, sessions, store, make_file, local_policy, session_created):
        """Test finish errors are returned and the context kept."""
        session_created()
        failure = Err(factories.xml_error(ErrorKind.FAILED_FINISH_OSS_UPLOAD, '<Error/>', 'too small', 'EntityTooSmall'))
        adapter = FakeAdapter(client, finish_results=[failure])

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.error.kind == ErrorKind.FAILED_FINISH_OSS_UPLOAD
        assert adapter.finished == 1
        assert len(store.all()) == 1


class TestPreflight:
    """Test suite for checks made before any network call."""

    @pytest.mark.asyncio
    async def test_no_policy(self, client, sessions, make_file):
        """Test missing policy."""
        coordinator = UploadCoordinator(client, sessions)

        result = await coordinator.upload(make_file(), None, '/')

        assert result.error.kind == ErrorKind.NO_POLICY_SELECTED
        client.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_policy_type(self, client, sessions, make_file):
        """Test policy types without adapter."""
        coordinator = UploadCoordinator(client, sessions)

        result = await coordinator.upload(make_file(), Policy(id=1, type='ftp'), '/')

        assert result.error.kind == ErrorKind.UNKNOWN_POLICY_TYPE
        client.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_file_too_large(self, client, sessions):
        """Test policy size limit is enforced without a session."""
        policy = Policy(id=1, type='local', max_size=10 * 1024 * 1024)
        file = LocalFile(path=Path('big.iso'), name='big.iso', size=11 * 1024 * 1024, last_modified=0)

        result = await UploadCoordinator(client, sessions).upload(file, policy, '/')

        assert result.error.kind == ErrorKind.INVALID_FILE
        assert result.error.message == 'File size exceeds the storage policy limit of 10 MB'
        client.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_onedrive_empty_file(self, client, sessions, make_file):
        """Test empty OneDrive uploads short-circuit."""
        policy = Policy(id=2, type='onedrive')

        result = await UploadCoordinator(client, sessions).upload(make_file(b''), policy, '/')

        assert result.error.kind == ErrorKind.ONEDRIVE_EMPTY_FILE
        client.call.assert_not_awaited()
        client.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_creation_failure(self, client, sessions, make_file, local_policy):
        """Test session errors are returned."""
        client.call.return_value = Err(factories.api_error(
            ErrorKind.FAILED_CREATE_UPLOAD_SESSION, ApiResponse(code=40004, msg='exists')
        ))
        adapter = FakeAdapter(client)

        result = await _coordinator(client, sessions, adapter).upload(make_file(), local_policy, '/')

        assert result.error.kind == ErrorKind.FAILED_CREATE_UPLOAD_SESSION
        assert adapter.calls == []


class TestDuplicateTask:
    """Test suite for the in-flight guard."""

    @pytest.mark.asyncio
    async def test_duplicate_rejected_without_network(self, client, sessions, make_file, local_policy,
                                                      session_created):
        """Test a second upload of the same task fails immediately."""
        session_created()
        adapter = FakeAdapter(client)
        adapter.gate = asyncio.Event()
        coordinator = _coordinator(client, sessions, adapter)
        file = make_file(CONTENT)
        identity = TaskIdentity.for_upload(local_policy, file, '/')

        first = asyncio.ensure_future(coordinator.upload(file, local_policy, '/'))
        for _ in range(200):
            if adapter.calls:
                break
            await asyncio.sleep(0.01)
        assert adapter.calls
        assert coordinator.is_running(identity)

        second = await coordinator.upload(file, local_policy, '/')

        assert second.error.kind == ErrorKind.PROCESSING_TASK_DUPLICATED
        assert client.call.await_count == 1

        adapter.gate.set()
        assert (await first).is_ok
        assert not coordinator.is_running(identity)

    @pytest.mark.asyncio
    async def test_other_destination_allowed(self, client, sessions, make_file, local_policy, session_created):
        """Test the same file to another folder is a different task."""
        session_created()
        coordinator = _coordinator(client, sessions, FakeAdapter(client))
        file = make_file(CONTENT)

        results = await asyncio.gather(
            coordinator.upload(file, local_policy, '/a'),
            coordinator.upload(file, local_policy, '/b'),
        )

        assert all(r.is_ok for r in results)


class TestContextLifecycle:
    """Test suite for expiry, cancellation and resume."""

    @pytest.mark.asyncio
    async def test_expired_context_no_network(self, client, sessions, make_file, local_policy, session_created):
        """Test a context past its TTL stops the upload before sending."""
        session_created(expires=1)
        adapter = FakeAdapter(client)

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.error.kind == ErrorKind.CTX_EXPIRED
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_expiry_code_stops_upload(self, client, sessions, store, make_file, local_policy,
                                            session_created):
        """Test the service's expiry code expires the context without retry."""
        session_created()
        expired = Err(factories.api_error(
            ErrorKind.LOCAL_CHUNK_UPLOAD_FAILED, ApiResponse(code=40011, msg='session expired'), 1
        ))
        adapter = FakeAdapter(client, failures={1: [expired]})
        config = UploaderConfig(retry=RetryConfig(
            base_delay=0,
            table=RetryTable(transient_codes=frozenset({-1, 40011})),
        ))

        result = await _coordinator(client, sessions, adapter, config=config).upload(
            make_file(CONTENT), local_policy, '/'
        )

        assert result.error.kind == ErrorKind.CTX_EXPIRED
        assert adapter.attempts(1) == 1
        assert adapter.attempts(2) == 0
        assert store.all() == {}

    @pytest.mark.asyncio
    async def test_caller_cancel_not_retried(self, client, sessions, store, make_file, local_policy,
                                             session_created, envelope):
        """Test caller cancellation is final and tears the session down."""
        session_created()
        canceled = Err(factories.request_canceled('stop'), caller_canceled=True)
        adapter = FakeAdapter(client, failures={0: [canceled]})

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.caller_canceled
        assert result.error.kind == ErrorKind.REQUEST_CANCELED
        assert adapter.attempts(0) == 1
        args, _ = client.call.await_args
        assert args[:2] == ('DELETE', '/session/sess-1')
        assert store.all() == {}

    @pytest.mark.asyncio
    async def test_network_cancel_retried(self, client, sessions, make_file, local_policy, session_created):
        """Test timeouts are retried like other transient failures."""
        session_created()
        timeout = Err(factories.request_canceled('timed out'))
        adapter = FakeAdapter(client, failures={0: [timeout]})

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.is_ok
        assert adapter.attempts(0) == 2

    @pytest.mark.asyncio
    async def test_token_canceled_during_backoff(self, client, sessions, make_file, local_policy,
                                                 session_created):
        """Test cancellation while waiting to retry."""
        session_created()
        adapter = FakeAdapter(client, failures={0: [_busy(0)] * 5})
        config = UploaderConfig(retry=RetryConfig(base_delay=10))
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.2, token.cancel)

        result = await asyncio.wait_for(
            _coordinator(client, sessions, adapter, config=config).upload(
                make_file(CONTENT), local_policy, '/', token
            ),
            timeout=5,
        )

        assert result.caller_canceled
        assert adapter.attempts(0) == 1

    @pytest.mark.asyncio
    async def test_resume_skips_acknowledged(self, client, sessions, store, make_file, local_policy,
                                             session_created):
        """Test an interrupted upload resumes from the stored context."""
        session_created()
        file = make_file(CONTENT)
        first = FakeAdapter(client, failures={2: [_rejected(2)]})

        failed = await _coordinator(client, sessions, first).upload(file, local_policy, '/')

        assert not failed.is_ok
        assert len(store.all()) == 1

        second = FakeAdapter(client)
        result = await _coordinator(client, sessions, second).upload(file, local_policy, '/')

        assert result.is_ok
        assert result.value.resumed
        assert [i for i, _ in second.calls] == [2, 3]
        assert client.call.await_count == 1
        assert store.all() == {}


class TestDispatch:
    """Test suite for sequential and concurrent dispatch."""

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, client, sessions, make_file, local_policy, session_created):
        """Test concurrent adapters keep at most their limit in flight."""
        session_created(chunk_size=2)
        adapter = FakeAdapter(client, sequential=False, concurrency=3)
        adapter.delay = 0.02

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.is_ok
        assert sorted(i for i, _ in adapter.calls) == list(range(8))
        assert 1 < adapter.peak <= 3

    @pytest.mark.asyncio
    async def test_sequential_one_at_a_time(self, client, sessions, make_file, local_policy, session_created):
        """Test sequential adapters never overlap chunks."""
        session_created(chunk_size=2)
        adapter = FakeAdapter(client)

        await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert adapter.peak == 1

    @pytest.mark.asyncio
    async def test_concurrent_failure_aborts(self, client, sessions, make_file, local_policy, session_created):
        """Test the first final failure ends a concurrent upload."""
        session_created(chunk_size=2)
        adapter = FakeAdapter(client, sequential=False, concurrency=3, failures={0: [_rejected(0)]})

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.error.response_code == 40001
        assert adapter.finished == 0

    @pytest.mark.asyncio
    async def test_single_request(self, client, sessions, make_file, local_policy, session_created):
        """Test form upload backends get the whole file at once."""
        session_created(chunk_size=4)
        adapter = FakeAdapter(client, single_request=True)

        result = await _coordinator(client, sessions, adapter).upload(make_file(CONTENT), local_policy, '/')

        assert result.value.total_chunks == 1
        assert adapter.calls == [(0, CONTENT)]

    @pytest.mark.asyncio
    async def test_empty_file_single_chunk(self, client, sessions, make_file, local_policy, session_created):
        """Test empty files still send one chunk."""
        session_created()
        adapter = FakeAdapter(client)

        result = await _coordinator(client, sessions, adapter).upload(make_file(b''), local_policy, '/')

        assert result.is_ok
        assert adapter.calls == [(0, b'')]
