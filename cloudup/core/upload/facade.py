"""
Upload facade.

Provides a simplified interface for file uploads.
Follows Facade Pattern - hides the client, session manager and coordinator.
"""
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

from ..api import ApiClient, CancellationToken
from ..config import UploaderConfig
from ..errors import Err, ErrorKind, Result, factories
from ..logging import get_logger, log_duration
from ..policy import Policy
from ..session import ContextStore, MemoryContextStore, SessionManager, UploadContext
from .coordinator import UploadCoordinator
from .models import LocalFile, UploadProgress, UploadResult

logger = get_logger('cloudup.upload')


class Uploader:
    """
    Simplified interface for chunked uploads.

    This is the main entry point for uploading files.

    Example:
        >>> from cloudup import Uploader, UploaderConfig, Policy
        >>> async with Uploader(UploaderConfig(api_base="https://host/api/v3")) as uploader:
        ...     result = await uploader.upload("report.pdf", Policy(id=1, type="local"), "/docs")
        ...     print(result.session_id)
    """

    def __init__(
        self,
        config: Optional[UploaderConfig] = None,
        store: Optional[ContextStore] = None,
        client: Optional[ApiClient] = None,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None
    ):
        """
        Initialize uploader.

        Args:
            config: Uploader configuration
            store: Context store for resume (in-memory if not provided)
            client: Optional pre-built API client
            progress_callback: Optional callback for progress updates
        """
        self._config = config or (client.config if client else UploaderConfig.default())
        self._client = client or ApiClient(self._config)
        self._store = store if store is not None else MemoryContextStore()
        self._sessions = SessionManager(self._client, self._store)
        self._coordinator = UploadCoordinator(
            self._client,
            self._sessions,
            config=self._config,
            progress_callback=progress_callback,
        )
        self._tokens: Set[CancellationToken] = set()

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def coordinator(self) -> UploadCoordinator:
        return self._coordinator

    async def __aenter__(self) -> 'Uploader':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the API client and the context store."""
        await self._client.close()
        self._store.close()

    async def try_upload(
        self,
        file_path: Union[str, Path],
        policy: Optional[Policy],
        destination: str = '/',
        name: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> Result:
        """
        Upload a file, returning the outcome instead of raising.

        When an upload of the same task is already running, waits along
        ``RetryConfig.duplicate_task_delays`` and checks again.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the path is not a regular file
        """
        file = LocalFile.from_path(file_path, name)
        token = token or CancellationToken()
        delays = list(self._config.retry.duplicate_task_delays)

        self._tokens.add(token)
        try:
            with log_duration(logger, f"Upload of {file.name}"):
                while True:
                    result = await self._coordinator.upload(file, policy, destination, token)
                    if result.is_ok or result.error.kind != ErrorKind.PROCESSING_TASK_DUPLICATED or not delays:
                        return result

                    delay = delays.pop(0)
                    logger.info(f"{file.name} is already uploading, checking again in {delay:.2f}s")
                    if await token.sleep(delay):
                        return Err(factories.request_canceled(token.reason), caller_canceled=True)
        finally:
            self._tokens.discard(token)

    async def upload(
        self,
        file_path: Union[str, Path],
        policy: Optional[Policy],
        destination: str = '/',
        name: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> UploadResult:
        """
        Upload a file.

        Returns:
            UploadResult of the finished upload

        Raises:
            UploaderError: The final taxonomy error if the upload failed
        """
        result = await self.try_upload(file_path, policy, destination, name, token)
        return result.unwrap()

    def cancel(self) -> None:
        """Cancel every upload currently running through this uploader."""
        for token in list(self._tokens):
            token.cancel()

    def stored_contexts(self) -> List[UploadContext]:
        """Interrupted uploads that can resume."""
        return self._sessions.stored_contexts()

    async def discard(self, ctx: UploadContext) -> Result:
        """Delete the session of an interrupted upload and forget it."""
        return await self._sessions.delete(ctx)
