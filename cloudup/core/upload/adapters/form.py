"""Single-request form upload adapters (Tencent COS, Upyun)."""
from typing import Any, Optional, Tuple

import aiohttp

from ...api import CancellationToken
from ...errors import Err, ErrorKind, Ok, Result
from ...session import UploadContext
from ..models import ChunkInfo
from .base import BaseAdapter, json_failure, xml_failure


def _file_name(ctx: UploadContext) -> str:
    return ctx.path.rsplit('/', 1)[-1] or 'file'


class COSAdapter(BaseAdapter):
    """
    Tencent COS POST object upload.

    The whole file goes in one signed form; the service callback then
    records it.
    """

    name = 'cos'
    single_request = True

    def _form(self, ctx: UploadContext, data: bytes) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field('policy', ctx.upload_policy)
        form.add_field('q-sign-algorithm', 'sha1')
        form.add_field('q-ak', ctx.access_key)
        form.add_field('q-key-time', ctx.key_time)
        form.add_field('q-signature', ctx.credential)
        form.add_field('key', ctx.path)
        form.add_field('success_action_status', '201')
        form.add_field('file', data, filename=_file_name(ctx), content_type='application/octet-stream')
        return form

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

        sent = await self._client.send('POST', url.value, token=token, data=self._form(ctx, data))
        if not sent.is_ok:
            return sent

        response = sent.value
        if response.ok:
            return Ok(None)
        return Err(xml_failure(response, ErrorKind.COS_POST_UPLOAD_FAILED, require_code=True))

    async def callback(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        return await self._client.call(
            'GET', f"/callback/cos/{ctx.session_id}",
            ErrorKind.COS_UPLOAD_CALLBACK_FAILED,
            token=token,
        )


def _upyun_error(document: Any) -> Optional[Tuple[str, Optional[str]]]:
    if 'message' not in document:
        return None
    code = document.get('code')
    return str(document['message']), str(code) if code is not None else None


class UpyunAdapter(BaseAdapter):
    """
    Upyun form API upload.

    Upyun notifies the service itself; a JSON ``{code, message}`` body
    reports failures.
    """

    name = 'upyun'
    single_request = True

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

        form = aiohttp.FormData()
        form.add_field('policy', ctx.upload_policy)
        form.add_field('authorization', ctx.credential)
        form.add_field('file', data, filename=_file_name(ctx), content_type='application/octet-stream')

        sent = await self._client.send('POST', url.value, token=token, data=form)
        if not sent.is_ok:
            return sent

        response = sent.value
        if response.ok:
            return Ok(None)
        return Err(json_failure(response, ErrorKind.UPYUN_POST_UPLOAD_FAILED, _upyun_error))
