"""
S3-compatible multipart adapters.

Chunks go to presigned part URLs; the service precomputes one URL per part
and a completion URL. Errors are S3 XML documents.
"""
import xml.etree.ElementTree as ET
from typing import Optional

from ...api import CancellationToken
from ...errors import Err, ErrorKind, Ok, Result, factories
from ...session import UploadContext
from ..models import ChunkInfo
from .base import BaseAdapter, find_xml_text, logger, xml_failure


def complete_multipart_body(ctx: UploadContext) -> str:
    """``CompleteMultipartUpload`` document listing every recorded part."""
    root = ET.Element('CompleteMultipartUpload')
    for index in sorted(ctx.parts):
        part = ET.SubElement(root, 'Part')
        ET.SubElement(part, 'PartNumber').text = str(index + 1)
        ET.SubElement(part, 'ETag').text = ctx.parts[index]
    return ET.tostring(root, encoding='unicode')


class S3Adapter(BaseAdapter):
    """
    Generic S3-compatible backend.

    Parts upload concurrently; finishing posts the part list to the
    completion URL, then the service callback records the file.
    """

    name = 's3'
    sequential = False
    concurrency = 3

    finish_error_kind = ErrorKind.S3LIKE_CHUNK_UPLOAD_FAILED
    finish_content_type = 'application/xml'
    callback_path: Optional[str] = '/callback/s3/{session_id}'

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk: ChunkInfo,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        url = self._upload_url(ctx, chunk.index)
        if not url.is_ok:
            return url

        sent = await self._client.send('PUT', url.value, token=token, data=data)
        if not sent.is_ok:
            return sent

        response = sent.value
        if not response.ok:
            return Err(xml_failure(response, ErrorKind.S3LIKE_CHUNK_UPLOAD_FAILED))

        etag = response.header('ETag')
        if not etag:
            return Err(factories.transform_error(response.text, "missing ETag header"))
        return Ok(etag)

    async def finish(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        if not ctx.complete_url:
            return Err(factories.context_error(
                ErrorKind.INVALID_CTX_DATA, f"session {ctx.session_id} has no completion URL"
            ))

        sent = await self._client.send(
            'POST', ctx.complete_url,
            token=token,
            data=complete_multipart_body(ctx),
            headers={'Content-Type': self.finish_content_type},
        )
        if not sent.is_ok:
            return sent

        response = sent.value
        if not response.ok or self._is_error_document(response.text):
            return Err(xml_failure(response, self.finish_error_kind, require_code=True))

        logger.debug(f"Multipart upload {ctx.upload_id} completed")
        return Ok(None)

    async def callback(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        if self.callback_path is None:
            return Ok(None)
        return await self._client.call(
            'POST', self.callback_path.format(session_id=ctx.session_id),
            ErrorKind.S3LIKE_UPLOAD_CALLBACK_FAILED,
            token=token,
        )

    @staticmethod
    def _is_error_document(raw: str) -> bool:
        # S3 may answer a completion with 200 and an <Error> body
        if '<Error' not in raw:
            return False
        try:
            root = ET.fromstring(raw)
        except ET.ParseError:
            return False
        return root.tag.rsplit('}', 1)[-1] == 'Error' and find_xml_text(root, 'Code') is not None


class OSSAdapter(S3Adapter):
    """
    Aliyun OSS.

    Chunks like S3; the completion has its own error kind and OSS calls the
    service back itself, so there is no client callback.
    """

    name = 'oss'
    finish_error_kind = ErrorKind.FAILED_FINISH_OSS_UPLOAD
    finish_content_type = 'application/octet-stream'
    callback_path = None
