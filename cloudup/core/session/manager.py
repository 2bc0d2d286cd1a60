"""
Upload session manager.

Owns the lifecycle of upload contexts: creation and deletion through the
service API, expiry checks, and persistence for resume.
"""
import json
import sqlite3
from typing import List, Optional

from ..api import ApiClient, CancellationToken
from ..errors import ErrorKind, Err, Ok, Result, UploaderError, api_payload, factories
from ..logging import get_logger
from ..policy import Policy
from .memory_store import MemoryContextStore
from .models import DECODE_ERRORS, ContextState, TaskIdentity, UploadContext
from .protocols import ContextStore

logger = get_logger('cloudup.session')

STORE_ERRORS = (OSError, sqlite3.Error)


class SessionManager:
    """
    Creates, resumes, checks and tears down upload contexts.

    No operation here raises for an expected failure; each returns a
    ``Result``. Persistence failures are reported but never abort an upload.

    Example:
        >>> manager = SessionManager(client, SQLiteContextStore("uploads"))
        >>> result = await manager.open(identity, policy, file, "/docs")
        >>> ctx = result.unwrap()
    """

    def __init__(
        self,
        client: ApiClient,
        store: Optional[ContextStore] = None
    ):
        self._client = client
        self._store = store if store is not None else MemoryContextStore()

    @property
    def store(self) -> ContextStore:
        return self._store

    async def create(
        self,
        policy: Policy,
        file,
        destination: str,
        identity: Optional[TaskIdentity] = None,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """
        Create an upload session on the service.

        Args:
            policy: Target storage policy
            file: File being uploaded (name, size, last_modified, mime_type)
            destination: Destination directory on the service
            identity: Task identity the context is persisted under
            token: Optional cancellation token

        Returns:
            ``Ok(UploadContext)`` in ACTIVE state, or ``Err``
        """
        body = {
            'path': destination,
            'size': file.size,
            'name': file.name,
            'policy_id': policy.id,
            'last_modified': int(file.last_modified) * 1000,
            'mime_type': file.mime_type,
        }
        result = await self._client.call(
            'POST', '/session', ErrorKind.FAILED_CREATE_UPLOAD_SESSION,
            token=token, json=body
        )
        if not result.is_ok:
            logger.warning(f"Could not create upload session for {file.name}: {result.error.message}")
            return result

        data = result.value.data
        try:
            ctx = UploadContext.from_session_response(
                data, policy, file.size, identity.key if identity else ''
            )
        except (TypeError, ValueError) as e:
            return Err(factories.transform_error(json.dumps(data, default=str), str(e)))

        logger.info(
            f"Upload session {ctx.session_id} created: "
            f"{ctx.total_chunks} chunk(s) of {ctx.chunk_size} bytes"
        )
        self.persist(ctx)
        return Ok(ctx)

    async def delete(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """
        Delete an upload session.

        The context is gone from the caller's point of view whatever the
        service answers; a rejection is returned as
        ``FailedDeleteUploadSession`` for reporting only.
        """
        result = await self._client.call(
            'DELETE', f"/session/{ctx.session_id}",
            ErrorKind.FAILED_DELETE_UPLOAD_SESSION, token=token
        )
        ctx.state = ContextState.DELETED
        if ctx.task_key:
            self.forget(ctx.task_key)

        if not result.is_ok:
            logger.warning(f"Could not delete upload session {ctx.session_id}: {result.error.message}")
            return result

        logger.info(f"Upload session {ctx.session_id} deleted")
        return Ok(None)

    def ensure_active(self, ctx: Optional[UploadContext]) -> Result:
        """
        Check that ``ctx`` can accept chunk writes. No network call.

        Returns:
            ``Ok(ctx)``; ``Err(InvalidCtxData)`` for an absent or deleted
            context; ``Err(CtxExpired)`` once it expired
        """
        if ctx is None or ctx.state in (ContextState.ABSENT, ContextState.DELETED):
            state = ctx.state.value if ctx is not None else ContextState.ABSENT.value
            return Err(factories.context_error(
                ErrorKind.INVALID_CTX_DATA, f"upload context is {state}"
            ))

        if ctx.is_expired(margin=self._client.config.context_ttl_margin):
            self.mark_expired(ctx)
            return Err(factories.context_expired(ctx.session_id))

        return Ok(ctx)

    def mark_expired(self, ctx: UploadContext) -> None:
        """Record that the backend discarded ``ctx``."""
        if ctx.state != ContextState.EXPIRED:
            logger.warning(f"Upload session {ctx.session_id} expired")
        ctx.state = ContextState.EXPIRED
        if ctx.task_key:
            self.forget(ctx.task_key)

    def is_expiry_error(self, error: UploaderError) -> bool:
        """Whether the service rejected a call because the session expired."""
        response = api_payload(error)
        return response is not None and response.code in self._client.config.expired_codes

    def resume(self, identity: TaskIdentity) -> Result:
        """
        Load the stored context of ``identity``.

        Returns:
            ``Ok(UploadContext)``, ``Ok(None)`` when there is nothing usable
            to resume, ``Err(ReadCtxFailed)`` on store failure, or
            ``Err(InvalidCtxData)`` for an undecodable record (removed)
        """
        try:
            record = self._store.load(identity.key)
        except STORE_ERRORS as e:
            return Err(factories.context_error(ErrorKind.READ_CTX_FAILED, str(e)))

        if record is None:
            return Ok(None)

        try:
            ctx = UploadContext.from_json(record)
        except DECODE_ERRORS as e:
            self.forget(identity.key)
            return Err(factories.context_error(ErrorKind.INVALID_CTX_DATA, str(e)))

        if not ctx.is_active or ctx.is_expired(margin=self._client.config.context_ttl_margin):
            logger.info(f"Discarding stale upload context {ctx.session_id}")
            self.forget(identity.key)
            return Ok(None)

        return Ok(ctx)

    async def open(
        self,
        identity: TaskIdentity,
        policy: Policy,
        file,
        destination: str,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """Resume the stored context of ``identity``, or create a new session."""
        resumed = self.resume(identity)
        if not resumed.is_ok:
            logger.warning(f"Ignoring stored upload context: {resumed.error.message}")
        elif resumed.value is not None:
            ctx: UploadContext = resumed.value
            if ctx.policy.id == policy.id and ctx.file_size == file.size:
                logger.info(
                    f"Resuming upload session {ctx.session_id}: "
                    f"{len(ctx.acknowledged)}/{ctx.total_chunks} chunks stored"
                )
                return resumed
            self.forget(identity.key)

        return await self.create(policy, file, destination, identity, token)

    def persist(self, ctx: UploadContext) -> Result:
        """Save ``ctx`` for resume; ``Err(WriteCtxFailed)`` is logged and returned."""
        if not ctx.task_key:
            return Ok(None)
        try:
            self._store.save(ctx.task_key, ctx.to_json())
        except STORE_ERRORS as e:
            error = factories.context_error(ErrorKind.WRITE_CTX_FAILED, str(e))
            logger.warning(error.message)
            return Err(error)
        return Ok(None)

    def forget(self, key: str) -> Result:
        """Remove a stored context; ``Err(RemoveCtxFailed)`` is logged and returned."""
        try:
            self._store.delete(key)
        except STORE_ERRORS as e:
            error = factories.context_error(ErrorKind.REMOVE_CTX_FAILED, str(e))
            logger.warning(error.message)
            return Err(error)
        return Ok(None)

    def stored_contexts(self) -> List[UploadContext]:
        """Every decodable stored context."""
        contexts = []
        for key, record in self._store.all().items():
            try:
                contexts.append(UploadContext.from_json(record))
            except DECODE_ERRORS as e:
                logger.debug(f"Skipping invalid context {key}: {e}")
        return contexts
