"""Qiniu multipart upload (v2) adapter."""
from typing import Any, Optional, Tuple

from ...api import CancellationToken
from ...errors import Err, ErrorKind, Ok, Result, factories
from ...session import UploadContext
from ..models import ChunkInfo
from .base import BaseAdapter, json_body, json_failure


def _qiniu_error(document: Any) -> Optional[Tuple[str, Optional[str]]]:
    if 'error' not in document:
        return None
    return str(document['error']), None


class QiniuAdapter(BaseAdapter):
    """
    Qiniu resumable upload.

    Parts are numbered from 1; each returns an etag recorded on the context
    and listed again when completing.
    """

    name = 'qiniu'
    sequential = False
    concurrency = 3

    def _headers(self, ctx: UploadContext, content_type: str):
        return {
            'Authorization': f"UpToken {ctx.credential}",
            'Content-Type': content_type,
        }

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk: ChunkInfo,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        base = self._upload_url(ctx)
        if not base.is_ok:
            return base

        sent = await self._client.send(
            'PUT', f"{base.value}/{ctx.upload_id}/{chunk.index + 1}",
            token=token,
            data=data,
            headers=self._headers(ctx, 'application/octet-stream'),
        )
        if not sent.is_ok:
            return sent

        response = sent.value
        if not response.ok:
            return Err(json_failure(response, ErrorKind.QINIU_CHUNK_UPLOAD_FAILED, _qiniu_error))
        return json_body(response, 'etag')

    async def finish(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        base = self._upload_url(ctx)
        if not base.is_ok:
            return base
        if len(ctx.parts) < ctx.total_chunks:
            return Err(factories.context_error(
                ErrorKind.INVALID_CTX_DATA,
                f"{ctx.total_chunks - len(ctx.parts)} part(s) have no etag"
            ))

        parts = [
            {'etag': ctx.parts[index], 'partNumber': index + 1}
            for index in sorted(ctx.parts)
        ]
        sent = await self._client.send(
            'POST', f"{base.value}/{ctx.upload_id}",
            token=token,
            json={'parts': parts},
            headers=self._headers(ctx, 'application/json'),
        )
        if not sent.is_ok:
            return sent

        response = sent.value
        if not response.ok:
            return Err(json_failure(response, ErrorKind.FAILED_FINISH_QINIU_UPLOAD, _qiniu_error))
        return Ok(None)
