"""Constructors for each family of uploader errors."""
from typing import Any, Dict, Optional

from .kinds import ErrorKind
from .payloads import (
    ApiPayload,
    ChunkPayload,
    HttpPayload,
    JsonPayload,
    PolicyPayload,
    TransformPayload,
    ValidationPayload,
    XmlPayload,
)
from .uploader_error import UploaderError


def invalid_file(policy, field: str) -> UploaderError:
    """File violates the policy's ``size`` or ``suffix`` constraint."""
    if field not in ('size', 'suffix'):
        raise ValueError(f"Unknown validation field: {field}")
    return UploaderError(ErrorKind.INVALID_FILE, ValidationPayload(policy, field))


def no_policy_selected() -> UploaderError:
    return UploaderError(ErrorKind.NO_POLICY_SELECTED)


def unknown_policy_type(policy) -> UploaderError:
    return UploaderError(ErrorKind.UNKNOWN_POLICY_TYPE, PolicyPayload(policy))


def api_error(
    kind: ErrorKind,
    response,
    chunk_index: Optional[int] = None
) -> UploaderError:
    """
    Error reported by the service's own API envelope.

    Args:
        kind: Failure kind for the operation that was called
        response: ``ApiResponse`` carrying ``code``/``msg``/``error``
        chunk_index: Chunk the call was uploading, for chunk failures
    """
    payload = ApiPayload(response)
    if chunk_index is not None:
        return UploaderError(kind, ChunkPayload(chunk_index, payload))
    return UploaderError(kind, payload)


def http_error(
    url: str,
    status: Optional[int] = None,
    reason: str = '',
    body: str = '',
    detail: str = ''
) -> UploaderError:
    """Transport failure or an HTTP error without a recognisable body."""
    return UploaderError(
        ErrorKind.HTTP_REQUEST_FAILED,
        HttpPayload(url=url, status=status, reason=reason, body=body),
        detail=detail
    )


def json_error(
    kind: ErrorKind,
    document: Dict[str, Any],
    message: str,
    code: Optional[str] = None
) -> UploaderError:
    return UploaderError(kind, JsonPayload(document=document, code=code, message=message))


def xml_error(
    kind: ErrorKind,
    raw: str,
    message: str,
    code: Optional[str] = None
) -> UploaderError:
    return UploaderError(kind, XmlPayload(raw=raw, message=message, code=code))


def transform_error(raw: str, reason: str) -> UploaderError:
    """Backend response that could not be parsed."""
    return UploaderError(
        ErrorKind.FAILED_TRANSFORM_RESPONSE,
        TransformPayload(raw=raw, reason=reason)
    )


def context_error(kind: ErrorKind, detail: str) -> UploaderError:
    """Failure reading, writing or decoding a stored upload context."""
    return UploaderError(kind, detail=detail)


def context_expired(session_id: str = '') -> UploaderError:
    return UploaderError(ErrorKind.CTX_EXPIRED, detail=session_id)


def request_canceled(detail: str = '') -> UploaderError:
    return UploaderError(ErrorKind.REQUEST_CANCELED, detail=detail)


def task_duplicated(task_key: str) -> UploaderError:
    return UploaderError(ErrorKind.PROCESSING_TASK_DUPLICATED, detail=task_key)


def onedrive_empty_file() -> UploaderError:
    return UploaderError(ErrorKind.ONEDRIVE_EMPTY_FILE, detail='empty file not supported')
