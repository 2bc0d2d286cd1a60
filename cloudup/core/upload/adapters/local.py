"""Adapters for the service's own storage and for slave storage nodes."""
from typing import Optional

from ...api import CancellationToken, unwrap_envelope
from ...errors import ErrorKind, Ok, Result
from ...session import UploadContext
from ..models import ChunkInfo
from .base import BaseAdapter, logger


class LocalAdapter(BaseAdapter):
    """
    Uploads chunks to the service's own storage.

    ``PUT {api}/session/{id}/chunk/{index}``; the last chunk completes the
    upload, so there is no finish call.
    """

    name = 'local'

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk: ChunkInfo,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        result = await self._client.call(
            'PUT', f"/session/{ctx.session_id}/chunk/{chunk.index}",
            ErrorKind.LOCAL_CHUNK_UPLOAD_FAILED,
            token=token,
            chunk_index=chunk.index,
            data=data,
            headers={'Content-Type': 'application/octet-stream'},
        )
        if not result.is_ok:
            return result
        return Ok(None)


class SlaveAdapter(BaseAdapter):
    """
    Uploads chunks to a slave storage node.

    The node answers with the same envelope as the service API; the session
    credential authorizes the upload.
    """

    name = 'remote'

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk: ChunkInfo,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        url = self._upload_url(ctx)
        if not url.is_ok:
            return url

        sent = await self._client.send(
            'POST', url.value,
            token=token,
            params={'chunk': str(chunk.index)},
            data=data,
            headers={
                'Authorization': ctx.credential,
                'Content-Type': 'application/octet-stream',
            },
        )
        if not sent.is_ok:
            return sent

        result = unwrap_envelope(sent.value, ErrorKind.SLAVE_CHUNK_UPLOAD_FAILED, chunk.index)
        if not result.is_ok:
            logger.debug(f"Slave rejected chunk {chunk.index}: {result.error.message}")
            return result
        return Ok(None)
