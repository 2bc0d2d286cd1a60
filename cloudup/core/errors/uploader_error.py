"""
Uploader error value.

One class for every failure; the ``kind`` tag selects the payload and the
message template. Retry eligibility and message composition are plain
functions dispatching on ``kind`` and payload.
"""
import traceback
from typing import Any, Dict, Optional

from ..utils import size_to_string
from .kinds import ErrorKind
from .messages import Catalog, fill, lookup_template
from .payloads import (
    ApiPayload,
    ChunkPayload,
    HttpPayload,
    JsonPayload,
    Payload,
    PolicyPayload,
    TransformPayload,
    ValidationPayload,
    XmlPayload,
)
from .retry import DEFAULT_RETRY_TABLE, RetryTable

# Raw response bodies are cut to this length inside messages
MAX_RAW_IN_MESSAGE = 200


class UploaderError(Exception):
    """
    Failure of the upload pipeline.

    Inside the pipeline it travels as the error side of a ``Result``; the
    facade raises it at the outer surface.

    Attributes:
        kind: Member of the closed ``ErrorKind`` set
        payload: Kind-specific backend detail, or None
        detail: Free text from the code that detected the failure
        stack: Formatted stack at construction (debugging aid)
    """

    def __init__(
        self,
        kind: ErrorKind,
        payload: Optional[Payload] = None,
        detail: str = ''
    ):
        super().__init__(kind.value)
        self.kind = kind
        self.payload = payload
        self.detail = detail
        self.stack = ''.join(traceback.format_stack()[:-1])
        self._message: Optional[str] = None

    @property
    def name(self) -> str:
        """Stable identifier of the kind."""
        return self.kind.value

    @property
    def message(self) -> str:
        """Default message, composed on first read."""
        if self._message is None:
            self._message = format_message(self)
        return self._message

    @property
    def response_code(self) -> Optional[int]:
        """Service API code attached to the error, if any."""
        response = api_payload(self)
        return response.code if response else None

    def retryable(self, table: Optional[RetryTable] = None) -> bool:
        """Whether the error may be re-attempted under ``table``."""
        return is_retryable(self, table)

    def render(self, locale: Optional[Catalog] = None) -> str:
        """Message formatted with the caller's translated templates."""
        if locale is None:
            return self.message
        return format_message(self, locale)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"UploaderError({self.kind.value!r}, payload={self.payload!r})"


def api_payload(error: UploaderError) -> Optional[ApiPayload]:
    """The service API envelope attached to ``error``, unwrapping chunk payloads."""
    payload = error.payload
    if isinstance(payload, ChunkPayload):
        payload = payload.inner
    if isinstance(payload, ApiPayload):
        return payload
    return None


def is_retryable(error: UploaderError, table: Optional[RetryTable] = None) -> bool:
    """
    Retry eligibility of ``error``.

    API-backed errors need both a retryable kind and a transient response
    code; everything else depends on the kind alone.
    """
    table = table or DEFAULT_RETRY_TABLE
    if error.kind not in table.retryable_kinds:
        return False
    response = api_payload(error)
    if response is not None:
        return response.code in table.transient_codes
    return True


def _clip(text: str) -> str:
    if len(text) > MAX_RAW_IN_MESSAGE:
        return text[:MAX_RAW_IN_MESSAGE] + '...'
    return text


def _template_values(error: UploaderError) -> Dict[str, Any]:
    values: Dict[str, Any] = {'detail': error.detail, 'kind': error.kind.value}
    payload = error.payload
    if isinstance(payload, ChunkPayload):
        values['index'] = payload.index
        payload = payload.inner

    if isinstance(payload, ValidationPayload):
        policy = payload.policy
        values['max_size'] = size_to_string(policy.max_size)
        values['suffixes'] = ','.join(policy.allowed_suffix) if policy.allowed_suffix else '*'
    elif isinstance(payload, PolicyPayload):
        values['policy_type'] = payload.policy.type
    elif isinstance(payload, HttpPayload):
        values['url'] = payload.url
        values['status'] = payload.status
        values['reason'] = payload.reason
        if not values['detail']:
            values['detail'] = f"HTTP {payload.status} {payload.reason}".strip()
    elif isinstance(payload, (JsonPayload, XmlPayload)):
        values['message'] = payload.message
        values['code'] = payload.code
    elif isinstance(payload, TransformPayload):
        values['reason'] = payload.reason
        values['raw'] = _clip(payload.raw)
    return values


def _template_key(error: UploaderError) -> str:
    if isinstance(error.payload, ValidationPayload):
        return f"{error.kind.value}.{error.payload.field}"
    return error.kind.value


def format_message(error: UploaderError, catalog: Optional[Catalog] = None) -> str:
    """Compose the user facing message of ``error``."""
    template = lookup_template(_template_key(error), catalog)
    message = fill(template, _template_values(error))

    response = api_payload(error)
    if response is not None:
        message = f"{message}: {response.response.msg}"
        if response.response.error:
            message += f" ({response.response.error})"
    return message
