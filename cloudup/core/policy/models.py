"""
Storage policy models.

A policy describes the destination of an upload: its backend type and the
constraints files must satisfy.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class PolicyType(str, Enum):
    """Backend types an adapter exists for."""
    LOCAL = 'local'
    REMOTE = 'remote'
    ONEDRIVE = 'onedrive'
    S3 = 's3'
    OSS = 'oss'
    COS = 'cos'
    UPYUN = 'upyun'
    QINIU = 'qiniu'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Policy:
    """
    Storage policy in effect for an upload.

    Attributes:
        id: Policy id on the service
        type: Backend type discriminator; kept as the raw string so an
            unknown type can be reported rather than rejected on load
        name: Display name
        max_size: Maximum file size in bytes, 0 for unlimited
        allowed_suffix: Allowed lower-case extensions, empty for unrestricted

    Example:
        >>> policy = Policy(id=1, type='local', max_size=10 * 1024 * 1024)
        >>> policy.policy_type
        <PolicyType.LOCAL: 'local'>
    """
    id: int
    type: str
    name: str = ''
    max_size: int = 0
    allowed_suffix: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if isinstance(self.type, PolicyType):
            object.__setattr__(self, 'type', self.type.value)
        if self.allowed_suffix:
            object.__setattr__(
                self,
                'allowed_suffix',
                tuple(s.lower().lstrip('.') for s in self.allowed_suffix)
            )
        else:
            object.__setattr__(self, 'allowed_suffix', ())

    @property
    def policy_type(self) -> Optional[PolicyType]:
        """Known backend type, or None for types this client does not handle."""
        try:
            return PolicyType(self.type)
        except ValueError:
            return None

    @property
    def unlimited_size(self) -> bool:
        return self.max_size <= 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'type': self.type,
            'name': self.name,
            'maxSize': self.max_size,
            'allowedSuffix': list(self.allowed_suffix),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Policy':
        """
        Create from the service's policy representation.

        Raises:
            KeyError, TypeError, ValueError: If the representation is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"policy must be a dict, got {type(data).__name__}")
        suffixes = data.get('allowedSuffix', data.get('allowed_suffix')) or ()
        if isinstance(suffixes, str) or not all(isinstance(s, str) for s in suffixes):
            raise ValueError(f"allowedSuffix must be a list of strings, got {suffixes!r}")
        return cls(
            id=data['id'],
            type=data['type'],
            name=data.get('name', ''),
            max_size=int(data.get('maxSize', data.get('max_size', 0)) or 0),
            allowed_suffix=tuple(suffixes),
        )
