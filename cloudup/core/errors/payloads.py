"""
Backend response wrappers carried by uploader errors.

Each payload keeps what a backend returned on failure so callers can read
backend-specific codes without parsing the response again.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..api.models import ApiResponse
    from ..policy.models import Policy


@dataclass(frozen=True)
class ValidationPayload:
    """Policy constraint a file violated; ``field`` is ``size`` or ``suffix``."""
    policy: 'Policy'
    field: str


@dataclass(frozen=True)
class PolicyPayload:
    """Policy whose type no adapter handles."""
    policy: 'Policy'


@dataclass(frozen=True)
class ApiPayload:
    """Envelope returned by the service's own API."""
    response: 'ApiResponse'

    @property
    def code(self) -> int:
        return self.response.code


@dataclass(frozen=True)
class HttpPayload:
    """
    Raw HTTP failure.

    ``status`` is ``None`` when no response arrived at all (DNS, reset,
    refused connection).
    """
    url: str
    status: Optional[int] = None
    reason: str = ''
    body: str = ''


@dataclass(frozen=True)
class JsonPayload:
    """Error document of a JSON speaking cloud backend."""
    document: Dict[str, Any] = field(default_factory=dict)
    code: Optional[str] = None
    message: str = ''


@dataclass(frozen=True)
class XmlPayload:
    """Error document of an XML speaking cloud backend (S3, OSS, COS)."""
    raw: str
    message: str
    code: Optional[str] = None


@dataclass(frozen=True)
class ChunkPayload:
    """Chunk index attached to the payload of a chunk failure."""
    index: int
    inner: Optional['Payload'] = None


@dataclass(frozen=True)
class TransformPayload:
    """Response body that could not be parsed, and why."""
    raw: str
    reason: str


Payload = Union[
    ValidationPayload,
    PolicyPayload,
    ApiPayload,
    HttpPayload,
    JsonPayload,
    XmlPayload,
    ChunkPayload,
    TransformPayload,
]
