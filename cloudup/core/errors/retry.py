"""
Retry eligibility table.

The table is a plain value handed to ``is_retryable`` so deployments and
tests can swap it without touching module state.
"""
from dataclasses import dataclass
from typing import FrozenSet

from .kinds import ErrorKind

DEFAULT_RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset({
    ErrorKind.FAILED_CREATE_UPLOAD_SESSION,
    ErrorKind.HTTP_REQUEST_FAILED,
    ErrorKind.LOCAL_CHUNK_UPLOAD_FAILED,
    ErrorKind.SLAVE_CHUNK_UPLOAD_FAILED,
    ErrorKind.REQUEST_CANCELED,
    ErrorKind.PROCESSING_TASK_DUPLICATED,
    ErrorKind.FAILED_TRANSFORM_RESPONSE,
})

# Service API codes that mean "try again", as opposed to a business rule rejection
DEFAULT_TRANSIENT_CODES: FrozenSet[int] = frozenset({-1})


@dataclass(frozen=True)
class RetryTable:
    """
    Which failures may be re-attempted.

    Attributes:
        retryable_kinds: Kinds eligible for retry
        transient_codes: Service API codes that keep an API-backed error retryable
    """
    retryable_kinds: FrozenSet[ErrorKind] = DEFAULT_RETRYABLE_KINDS
    transient_codes: FrozenSet[int] = DEFAULT_TRANSIENT_CODES

    @classmethod
    def default(cls) -> 'RetryTable':
        """Create the default table."""
        return cls()


DEFAULT_RETRY_TABLE = RetryTable()
