"""OneDrive upload session adapter."""
from typing import Any, Optional, Tuple

from ...api import CancellationToken
from ...errors import Err, ErrorKind, Ok, Result, factories
from ...session import UploadContext
from ..models import ChunkInfo
from .base import BaseAdapter, json_failure


def _onedrive_error(document: Any) -> Optional[Tuple[str, Optional[str]]]:
    error = document.get('error')
    if not isinstance(error, dict) or 'message' not in error:
        return None
    return str(error['message']), error.get('code')


class OneDriveAdapter(BaseAdapter):
    """
    Uploads byte ranges into a OneDrive upload session.

    OneDrive needs ranges in order and rejects empty files, so empty files
    are refused before any network call.
    """

    name = 'onedrive'

    def validate(self, file) -> Result:
        if file.size == 0:
            return Err(factories.onedrive_empty_file())
        return Ok(file)

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk: ChunkInfo,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        if ctx.file_size == 0:
            return Err(factories.onedrive_empty_file())

        url = self._upload_url(ctx)
        if not url.is_ok:
            return url

        sent = await self._client.send(
            'PUT', url.value,
            token=token,
            data=data,
            headers={'Content-Range': f"bytes {chunk.start}-{chunk.end - 1}/{ctx.file_size}"},
        )
        if not sent.is_ok:
            return sent

        response = sent.value
        if response.ok:
            return Ok(None)
        return Err(json_failure(response, ErrorKind.ONEDRIVE_CHUNK_UPLOAD_FAILED, _onedrive_error))

    async def finish(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        return await self._client.call(
            'POST', f"/callback/onedrive/finish/{ctx.session_id}",
            ErrorKind.FAILED_FINISH_ONEDRIVE_UPLOAD,
            token=token,
            json={},
        )
