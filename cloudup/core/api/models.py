"""Service API response models."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Mapping
import json


@dataclass(frozen=True)
class ApiResponse:
    """
    Envelope returned by every service API call.

    ``{code: int, msg: str, error?: str, data: any}``; ``code == 0`` is success.
    """
    code: int
    msg: str = ''
    error: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ApiResponse':
        """
        Create from a decoded envelope.

        Raises:
            ValueError: If the document is not an envelope
        """
        if not isinstance(data, Mapping) or 'code' not in data:
            raise ValueError("response is not an API envelope")
        try:
            code = int(data['code'])
        except (TypeError, ValueError):
            raise ValueError(f"invalid envelope code: {data['code']!r}")
        return cls(
            code=code,
            msg=str(data.get('msg') or ''),
            error=data.get('error') or None,
            data=data.get('data'),
        )


@dataclass(frozen=True)
class HttpResponse:
    """
    Raw HTTP response as read off the wire.

    Bodies are read fully before the connection is released so adapters can
    parse them after the request returns.
    """
    url: str
    status: int
    reason: str = ''
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b''

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON
        """
        return json.loads(self.text)
