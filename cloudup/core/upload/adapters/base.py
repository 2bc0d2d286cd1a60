"""
Shared adapter behaviour.

Parsing of backend error documents lives here so every adapter maps a
malformed or incomplete document the same way: ``FailedTransformResponse``
carrying the raw body.
"""
import json
import xml.etree.ElementTree as ET
from typing import Any, Callable, Optional, Tuple

from ...api import ApiClient, CancellationToken, HttpResponse
from ...errors import Err, ErrorKind, Ok, Result, UploaderError, factories
from ...logging import get_logger
from ...session import UploadContext

logger = get_logger('cloudup.upload.adapters')

# Extracts (message, code) from a decoded JSON error document, or None
JsonErrorExtractor = Callable[[Any], Optional[Tuple[str, Optional[str]]]]


def find_xml_text(root: ET.Element, tag: str) -> Optional[str]:
    """Text of the first ``tag`` element, namespace agnostic; None if absent."""
    for element in root.iter():
        if element.tag == tag or element.tag.endswith('}' + tag):
            return element.text or ''
    return None


def parse_xml_error(raw: str, require_code: bool = False) -> Result:
    """
    Extract ``Message`` (and ``Code``) from an XML error document.

    Returns:
        ``Ok((message, code))``, or ``Err(FailedTransformResponse)`` when the
        document does not parse or lacks a required element
    """
    try:
        root = ET.fromstring(raw)
    except ET.ParseError as e:
        return Err(factories.transform_error(raw, f"invalid XML: {e}"))

    message = find_xml_text(root, 'Message')
    if message is None:
        return Err(factories.transform_error(raw, "missing Message element"))

    code = find_xml_text(root, 'Code')
    if require_code and code is None:
        return Err(factories.transform_error(raw, "missing Code element"))

    return Ok((message, code))


def xml_failure(
    response: HttpResponse,
    kind: ErrorKind,
    require_code: bool = False
) -> UploaderError:
    """Map a failed XML backend response to one taxonomy error."""
    raw = response.text
    if not raw.strip():
        return factories.http_error(response.url, response.status, response.reason)

    parsed = parse_xml_error(raw, require_code)
    if not parsed.is_ok:
        return parsed.error
    message, code = parsed.value
    return factories.xml_error(kind, raw, message, code)


def json_failure(
    response: HttpResponse,
    kind: ErrorKind,
    extract: JsonErrorExtractor
) -> UploaderError:
    """Map a failed JSON backend response to one taxonomy error."""
    raw = response.text
    if not raw.strip():
        return factories.http_error(response.url, response.status, response.reason)

    try:
        document = json.loads(raw)
    except ValueError as e:
        return factories.transform_error(raw, f"invalid JSON: {e}")

    extracted = extract(document) if isinstance(document, dict) else None
    if extracted is None:
        return factories.transform_error(raw, "missing error message")
    message, code = extracted
    return factories.json_error(kind, document, message, code)


def json_body(response: HttpResponse, field: str) -> Result:
    """
    Read ``field`` from a successful JSON response.

    Returns:
        ``Ok(value)`` or ``Err(FailedTransformResponse)``
    """
    try:
        document = response.json()
    except ValueError as e:
        return Err(factories.transform_error(response.text, f"invalid JSON: {e}"))
    if not isinstance(document, dict) or field not in document:
        return Err(factories.transform_error(response.text, f"missing {field}"))
    return Ok(document[field])


class BaseAdapter:
    """
    Base class for backend adapters.

    Subclasses override ``upload_chunk`` and, where the backend needs them,
    ``finish`` / ``callback`` / ``validate``.
    """

    name = 'base'
    sequential = True
    concurrency = 1
    single_request = False

    def __init__(self, client: ApiClient):
        self._client = client

    def validate(self, file) -> Result:
        return Ok(file)

    async def upload_chunk(
        self,
        ctx: UploadContext,
        chunk,
        data: bytes,
        token: Optional[CancellationToken] = None
    ) -> Result:
        raise NotImplementedError

    async def finish(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        return Ok(None)

    async def callback(
        self,
        ctx: UploadContext,
        token: Optional[CancellationToken] = None
    ) -> Result:
        return Ok(None)

    def _upload_url(self, ctx: UploadContext, index: int = 0) -> Result:
        """Upload URL number ``index`` of the session."""
        if index >= len(ctx.upload_urls):
            return Err(factories.context_error(
                ErrorKind.INVALID_CTX_DATA,
                f"session {ctx.session_id} has no upload URL for chunk {index}"
            ))
        return Ok(ctx.upload_urls[index])

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sequential={self.sequential}, concurrency={self.concurrency})"

