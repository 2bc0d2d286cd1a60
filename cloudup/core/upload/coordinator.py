"""
Chunk upload coordinator.

Drives one upload from policy check to finish: guards against duplicate
tasks, opens or resumes the context, dispatches chunks through the backend
adapter and retries what the error taxonomy says may be retried.
"""
import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Set

from ..api import ApiClient, CancellationToken
from ..config import UploaderConfig
from ..errors import Err, Ok, Result, factories, is_retryable
from ..logging import get_logger
from ..policy import Policy, PolicyValidator
from ..session import SessionManager, TaskIdentity, UploadContext
from .adapters import create_adapter
from .chunking import calculate_chunks
from .models import ChunkInfo, LocalFile, UploadProgress, UploadResult
from .protocols import BackendAdapter, ChunkReaderProtocol
from .reader import AsyncFileReader

logger = get_logger('cloudup.upload.coordinator')


class UploadCoordinator:
    """
    Coordinates chunked uploads.

    Uses dependency injection for the adapter factory and chunk reader so
    tests can replace the network side entirely.

    Every public operation returns a ``Result``; failures are taxonomy errors
    handed back untouched once retries are exhausted or not allowed.
    """

    def __init__(
        self,
        client: ApiClient,
        sessions: SessionManager,
        config: Optional[UploaderConfig] = None,
        adapter_factory: Optional[Callable[[Policy, ApiClient], Result]] = None,
        reader_factory: Optional[Callable[[], ChunkReaderProtocol]] = None,
        validator: Optional[PolicyValidator] = None,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None
    ):
        """
        Initialize upload coordinator.

        Args:
            client: Service API client
            sessions: Session manager owning context lifecycle
            config: Uploader configuration (defaults to the client's)
            adapter_factory: Maps a policy to an adapter ``Result``
            reader_factory: Creates a chunk reader per upload
            validator: Policy validator
            progress_callback: Optional callback for progress updates
        """
        self._client = client
        self._sessions = sessions
        self._config = config or client.config
        self._adapter_factory = adapter_factory or create_adapter
        self._reader_factory = reader_factory or AsyncFileReader
        self._validator = validator or PolicyValidator()
        self._progress_callback = progress_callback
        self._in_flight: Set[str] = set()

    def is_running(self, identity: TaskIdentity) -> bool:
        """Whether an upload with ``identity`` is in progress."""
        return identity.key in self._in_flight

    async def upload(
        self,
        file: LocalFile,
        policy: Optional[Policy],
        destination: str,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """
        Upload ``file`` to ``destination`` with ``policy``.

        Args:
            file: File to upload
            policy: Storage policy; None fails with ``NoPolicySelected``
            destination: Destination directory on the service
            token: Optional cancellation token

        Returns:
            ``Ok(UploadResult)`` or ``Err`` with the final taxonomy error
        """
        if policy is None:
            return Err(factories.no_policy_selected())

        identity = TaskIdentity.for_upload(policy, file, destination)
        if identity.key in self._in_flight:
            logger.warning(f"Upload of {file.name} to {destination} is already in progress")
            return Err(factories.task_duplicated(identity.key))

        self._in_flight.add(identity.key)
        try:
            return await self._upload(file, policy, destination, identity, token or CancellationToken())
        finally:
            self._in_flight.discard(identity.key)

    async def _upload(
        self,
        file: LocalFile,
        policy: Policy,
        destination: str,
        identity: TaskIdentity,
        token: CancellationToken
    ) -> Result:
        created = self._adapter_factory(policy, self._client)
        if not created.is_ok:
            return created
        adapter: BackendAdapter = created.value

        for check in (self._validator.validate(file, policy), adapter.validate(file)):
            if not check.is_ok:
                logger.info(f"{file.name} rejected: {check.error.message}")
                return check

        logger.info(f"Starting upload: {file.name} ({file.size} bytes) with {adapter!r}")
        opened = await self._sessions.open(identity, policy, file, destination, token)
        if not opened.is_ok:
            return self._report_failure(file, opened)
        ctx: UploadContext = opened.value
        if token.cancelled:
            return await self._abort(ctx, file, Err(factories.request_canceled(token.reason), caller_canceled=True))

        resumed = bool(ctx.acknowledged)
        if adapter.single_request and not resumed:
            ctx.chunk_size = 0
            ctx.total_chunks = 1

        chunks = calculate_chunks(file.size, ctx.chunk_size)
        progress = UploadProgress(
            total_chunks=ctx.total_chunks,
            uploaded_chunks=len(ctx.acknowledged),
            total_bytes=file.size,
            uploaded_bytes=sum(c.size for c in chunks if c.index in ctx.acknowledged),
        )
        pending = [c for c in chunks if c.index not in ctx.acknowledged]
        logger.info(f"{len(pending)} of {ctx.total_chunks} chunk(s) to upload for session {ctx.session_id}")

        reader = self._reader_factory()
        await reader.open_file(file.path)
        try:
            dispatched = await self._dispatch(adapter, ctx, file, pending, reader, progress, token)
        finally:
            await reader.close_file()
        if not dispatched.is_ok:
            return await self._abort(ctx, file, dispatched)

        finished = await self._attempt(ctx, token, progress, 'finish', lambda: adapter.finish(ctx, token))
        if not finished.is_ok:
            return await self._abort(ctx, file, finished)

        called = await self._attempt(ctx, token, progress, 'callback', lambda: adapter.callback(ctx, token))
        if not called.is_ok:
            return await self._abort(ctx, file, called)

        self._sessions.forget(identity.key)
        logger.info(f"Upload of {file.name} completed (session {ctx.session_id}, {progress.retries} retries)")

        response = finished.value
        return Ok(UploadResult(
            session_id=ctx.session_id,
            file_name=file.name,
            file_size=file.size,
            destination=destination,
            policy=policy,
            total_chunks=ctx.total_chunks,
            resumed=resumed,
            retries=progress.retries,
            response=getattr(response, 'data', response),
        ))

    async def _dispatch(
        self,
        adapter: BackendAdapter,
        ctx: UploadContext,
        file: LocalFile,
        chunks: List[ChunkInfo],
        reader: ChunkReaderProtocol,
        progress: UploadProgress,
        token: CancellationToken
    ) -> Result:
        """
        Upload ``chunks``, in order for sequential adapters, otherwise with
        up to the adapter's concurrency in flight. The first failure aborts
        the remaining chunks.
        """
        limit = 1 if adapter.sequential else max(1, min(adapter.concurrency, self._config.max_concurrency))

        if limit == 1:
            for chunk in chunks:
                result = await self._upload_chunk(adapter, ctx, file, chunk, reader, progress, token)
                if not result.is_ok:
                    return result
            return Ok(None)

        semaphore = asyncio.Semaphore(limit)

        async def worker(chunk: ChunkInfo) -> Result:
            async with semaphore:
                return await self._upload_chunk(adapter, ctx, file, chunk, reader, progress, token)

        tasks = [asyncio.ensure_future(worker(chunk)) for chunk in chunks]
        try:
            for next_done in asyncio.as_completed(tasks):
                result = await next_done
                if not result.is_ok:
                    return result
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return Ok(None)

    async def _upload_chunk(
        self,
        adapter: BackendAdapter,
        ctx: UploadContext,
        file: LocalFile,
        chunk: ChunkInfo,
        reader: ChunkReaderProtocol,
        progress: UploadProgress,
        token: CancellationToken
    ) -> Result:
        data: Optional[bytes] = None

        async def send() -> Result:
            nonlocal data
            if data is None:
                data = await reader.read_chunk(file.path, chunk.start, chunk.end)
            return await adapter.upload_chunk(ctx, chunk, data, token)

        result = await self._attempt(ctx, token, progress, f"chunk {chunk.index}", send)
        if not result.is_ok:
            return result

        if ctx.acknowledge(chunk.index, result.value):
            progress.uploaded_chunks += 1
            progress.uploaded_bytes += chunk.size
            self._sessions.persist(ctx)
            if self._progress_callback:
                self._progress_callback(progress)
        return Ok(None)

    async def _attempt(
        self,
        ctx: UploadContext,
        token: CancellationToken,
        progress: UploadProgress,
        label: str,
        operation: Callable[[], Awaitable[Result]]
    ) -> Result:
        """
        Run ``operation`` until it succeeds or its failure may not be retried.

        The context and the token are checked before every attempt, since
        either may change while a request is in flight.
        """
        retry = self._config.retry
        attempt = 0
        while True:
            active = self._sessions.ensure_active(ctx)
            if not active.is_ok:
                return active
            if token.cancelled:
                return Err(factories.request_canceled(token.reason), caller_canceled=True)

            attempt += 1
            start = time.time()
            result = await operation()
            elapsed = time.time() - start

            if result.is_ok:
                logger.debug(f"{label} of session {ctx.session_id} done in {elapsed:.2f}s")
                return result

            error = result.error
            if self._sessions.is_expiry_error(error):
                self._sessions.mark_expired(ctx)
                return Err(factories.context_expired(ctx.session_id))
            if not ctx.is_active:
                return self._sessions.ensure_active(ctx)

            budget = retry.attempts_for(error.kind)
            if (
                result.caller_canceled
                or token.cancelled
                or not is_retryable(error, retry.table)
                or attempt >= budget
            ):
                logger.debug(f"{label} failed after {attempt} attempt(s): [{error.kind}] {error.message}")
                return result

            delay = retry.calculate_delay(attempt - 1)
            progress.retries += 1
            logger.warning(
                f"{label} failed ({error.kind}), retrying in {delay:.2f}s "
                f"(attempt {attempt + 1}/{budget})"
            )
            if await token.sleep(delay):
                return Err(factories.request_canceled(token.reason), caller_canceled=True)

    async def _abort(
        self,
        ctx: UploadContext,
        file: LocalFile,
        failure: Err
    ) -> Err:
        """
        End a failed upload.

        A caller cancellation tears the session down; any other failure keeps
        the stored context so the upload can resume later.
        """
        if failure.caller_canceled and ctx.is_active:
            await self._sessions.delete(ctx)
        return self._report_failure(file, failure)

    def _report_failure(self, file: LocalFile, failure: Err) -> Err:
        error = failure.error
        if failure.caller_canceled:
            logger.info(f"Upload of {file.name} canceled")
        else:
            logger.error(f"Upload of {file.name} failed: [{error.kind}] {error.message}")
        return failure
