"""
Async client for the service's own JSON API.

Also the single place where raw HTTP requests are issued, so every adapter
gets the same translation of transport failures into taxonomy errors.
"""
import asyncio
import time
from typing import Any, Optional

import aiohttp

from ..config import UploaderConfig
from ..errors import ErrorKind, Err, Ok, Result, factories
from ..logging import get_logger
from .cancellation import CancellationToken, OperationCanceled
from .models import ApiResponse, HttpResponse

logger = get_logger('cloudup.api')


class ApiClient:
    """
    Asynchronous service API client.

    Features:
    - Configurable proxy, SSL, timeouts
    - Connection pooling through one shared ``aiohttp.ClientSession``
    - Cooperative cancellation through ``CancellationToken``
    - Failures returned as ``Err`` values, never raised

    Example:
        >>> async with ApiClient(UploaderConfig(api_base='https://host/api/v3')) as client:
        ...     result = await client.call('POST', '/session', ErrorKind.FAILED_CREATE_UPLOAD_SESSION, json=body)
    """

    def __init__(
        self,
        config: Optional[UploaderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize API client.

        Args:
            config: Uploader configuration (uses defaults if not provided)
            session: Optional shared session; closed by its owner, not here
        """
        self._config = config or UploaderConfig.default()
        self._session = session
        self._owns_session = session is None
        self._logger = logger

    @property
    def config(self) -> UploaderConfig:
        """Get current configuration."""
        return self._config

    async def __aenter__(self) -> 'ApiClient':
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(**self._config.get_connector_kwargs())
            self._session = aiohttp.ClientSession(
                connector=connector,
                **self._config.get_session_kwargs()
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def url(self, path: str) -> str:
        """Absolute URL of a service API path."""
        return f"{self._config.api_base}/{path.lstrip('/')}"

    async def _perform(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        **kwargs: Any
    ) -> HttpResponse:
        proxy = self._config.proxy.to_aiohttp_proxy() if self._config.proxy else None
        async with session.request(method, url, proxy=proxy, **kwargs) as response:
            body = await response.read()
            return HttpResponse(
                url=str(response.url),
                status=response.status,
                reason=response.reason or '',
                headers=dict(response.headers),
                body=body,
            )

    async def send(
        self,
        method: str,
        url: str,
        token: Optional[CancellationToken] = None,
        **kwargs: Any
    ) -> Result:
        """
        Issue a raw HTTP request.

        Any HTTP status is a successful send; callers decide what a non-2xx
        body means for their backend.

        Args:
            method: HTTP method
            url: Absolute URL
            token: Optional cancellation token
            **kwargs: Passed to ``aiohttp.ClientSession.request``

        Returns:
            ``Ok(HttpResponse)``, or ``Err`` with ``RequestCanceled`` (timeout or
            caller cancellation) or ``HTTPRequestFailed`` (transport failure)
        """
        if token is not None and token.cancelled:
            return Err(factories.request_canceled(token.reason), caller_canceled=True)

        session = await self._ensure_session()
        start = time.time()
        try:
            request = self._perform(session, method, url, **kwargs)
            if token is None:
                response = await request
            else:
                response = await token.run(request)
        except OperationCanceled as e:
            self._logger.debug(f"{method} {url} canceled by caller")
            return Err(factories.request_canceled(str(e)), caller_canceled=True)
        except asyncio.TimeoutError:
            elapsed = time.time() - start
            self._logger.warning(f"{method} {url} timed out after {elapsed:.2f}s")
            return Err(factories.request_canceled(f"timed out after {elapsed:.2f}s"))
        except aiohttp.ClientError as e:
            self._logger.warning(f"{method} {url} failed: {e}")
            return Err(factories.http_error(url, detail=str(e) or type(e).__name__))

        elapsed = time.time() - start
        self._logger.debug(f"{method} {url} -> {response.status} in {elapsed:.2f}s")
        return Ok(response)

    async def call(
        self,
        method: str,
        path: str,
        kind: ErrorKind,
        token: Optional[CancellationToken] = None,
        chunk_index: Optional[int] = None,
        **kwargs: Any
    ) -> Result:
        """
        Call the service API and unwrap its envelope.

        Args:
            method: HTTP method
            path: API path relative to ``api_base``
            kind: Error kind reported when the envelope carries a failure
            token: Optional cancellation token
            chunk_index: Chunk being uploaded, attached to chunk failures
            **kwargs: Passed to ``aiohttp.ClientSession.request``

        Returns:
            ``Ok(ApiResponse)`` when ``code == 0``, otherwise ``Err``
        """
        url = self.url(path)
        sent = await self.send(method, url, token=token, **kwargs)
        if not sent.is_ok:
            return sent

        return unwrap_envelope(sent.value, kind, chunk_index)


def unwrap_envelope(
    response: HttpResponse,
    kind: ErrorKind,
    chunk_index: Optional[int] = None
) -> Result:
    """
    Translate an HTTP response carrying the service envelope.

    Used for the service API and for slave nodes, which answer with the same
    envelope.

    Returns:
        ``Ok(ApiResponse)``; ``Err`` of ``kind`` when ``code != 0``;
        ``HTTPRequestFailed`` for an error status without an envelope;
        ``FailedTransformResponse`` for a 2xx body that is not an envelope
    """
    try:
        envelope = ApiResponse.from_dict(response.json())
    except ValueError as e:
        if not response.ok:
            return Err(factories.http_error(
                response.url, status=response.status, reason=response.reason, body=response.text
            ))
        logger.warning(f"Unparseable response from {response.url}: {e}")
        return Err(factories.transform_error(response.text, str(e)))

    if not envelope.ok:
        logger.debug(f"{response.url} returned code {envelope.code}: {envelope.msg}")
        return Err(factories.api_error(kind, envelope, chunk_index))

    return Ok(envelope)
