"""Uploader error taxonomy."""
from .kinds import ErrorKind
from .payloads import (
    Payload,
    ValidationPayload,
    PolicyPayload,
    ApiPayload,
    HttpPayload,
    JsonPayload,
    XmlPayload,
    ChunkPayload,
    TransformPayload,
)
from .retry import RetryTable, DEFAULT_RETRY_TABLE, DEFAULT_RETRYABLE_KINDS, DEFAULT_TRANSIENT_CODES
from .messages import DEFAULT_MESSAGES, Catalog
from .uploader_error import UploaderError, is_retryable, format_message, api_payload
from .result import Ok, Err, Result
from . import factories

__all__ = [
    'ErrorKind',
    'Payload',
    'ValidationPayload',
    'PolicyPayload',
    'ApiPayload',
    'HttpPayload',
    'JsonPayload',
    'XmlPayload',
    'ChunkPayload',
    'TransformPayload',
    'RetryTable',
    'DEFAULT_RETRY_TABLE',
    'DEFAULT_RETRYABLE_KINDS',
    'DEFAULT_TRANSIENT_CODES',
    'DEFAULT_MESSAGES',
    'Catalog',
    'UploaderError',
    'is_retryable',
    'format_message',
    'api_payload',
    'Ok',
    'Err',
    'Result',
    'factories',
]
