"""
Upload context models.

An upload context is the backend-tracked state of one resumable upload.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Set
import json
import math

from ..policy import Policy


class ContextState(str, Enum):
    """
    Lifecycle of an upload context.

    ``ABSENT -> ACTIVE -> EXPIRED | DELETED``; only ACTIVE accepts chunk writes.
    """
    ABSENT = 'absent'
    ACTIVE = 'active'
    EXPIRED = 'expired'
    DELETED = 'deleted'


@dataclass(frozen=True)
class TaskIdentity:
    """
    Identity of one logical upload: policy, file and destination.

    Two uploads with the same identity must never run at the same time; the
    key also names the persisted context used to resume.
    """
    policy_id: int
    file_name: str
    file_size: int
    last_modified: int
    destination: str

    @property
    def key(self) -> str:
        return (
            f"{self.policy_id}|{self.destination.rstrip('/') or '/'}|"
            f"{self.file_name}|{self.file_size}|{self.last_modified}"
        )

    @classmethod
    def for_upload(cls, policy: Policy, file, destination: str) -> 'TaskIdentity':
        """Identity for uploading ``file`` (name, size, last_modified) with ``policy``."""
        return cls(
            policy_id=policy.id,
            file_name=file.name,
            file_size=file.size,
            last_modified=int(file.last_modified),
            destination=destination,
        )


# Raised by UploadContext decoding for any malformed record
DECODE_ERRORS = (KeyError, TypeError, ValueError)


def _expect(value: Any, kind: type, name: str) -> Any:
    if not isinstance(value, kind):
        raise ValueError(f"{name} must be a {kind.__name__}, got {type(value).__name__}")
    return value


def _from_timestamp(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(value))
    except (OverflowError, OSError) as e:
        raise ValueError(f"invalid expiry timestamp {value!r}") from e


def count_chunks(file_size: int, chunk_size: int) -> int:
    """Number of chunks for a file; empty files and unchunked backends use one."""
    if chunk_size <= 0 or file_size <= 0:
        return 1
    return math.ceil(file_size / chunk_size)


@dataclass
class UploadContext:
    """
    Resumable upload context.

    Mutated only by the coordinator recording acknowledged chunks.

    Attributes:
        session_id: Upload session id issued by the service
        policy: Storage policy the session targets
        chunk_size: Declared chunk size in bytes, 0 when the backend takes
            the file in one request
        total_chunks: Number of chunks the backend expects
        file_size: Size of the file being uploaded
        acknowledged: Indices of chunks the backend confirmed
        created_at: Session creation time
        expires_at: Backend-declared expiry
        state: Lifecycle state
        task_key: ``TaskIdentity.key`` of the owning task
        upload_urls: Backend upload endpoints (one, or one per chunk for S3)
        credential: Backend credential / signature for uploads
        upload_id: Multipart upload id (S3, OSS, Qiniu)
        callback_secret: Secret used by the service callback
        complete_url: Multipart completion endpoint (S3, OSS)
        upload_policy: Form upload policy document (COS, Upyun)
        access_key: Access key id sent with form uploads (COS)
        key_time: Signature validity window (COS)
        path: Object key on the backend (COS)
        parts: Chunk index -> backend part tag (S3 ETag, Qiniu etag)
    """
    session_id: str
    policy: Policy
    chunk_size: int
    total_chunks: int
    file_size: int = 0
    acknowledged: Set[int] = field(default_factory=set)
    created_at: datetime = field(default_factory=datetime.now)
    expires_at: Optional[datetime] = None
    state: ContextState = ContextState.ACTIVE
    task_key: str = ''
    upload_urls: List[str] = field(default_factory=list)
    credential: str = ''
    upload_id: str = ''
    callback_secret: str = ''
    complete_url: str = ''
    upload_policy: str = ''
    access_key: str = ''
    key_time: str = ''
    path: str = ''
    parts: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_session_response(
        cls,
        data: Dict[str, Any],
        policy: Policy,
        file_size: int,
        task_key: str = ''
    ) -> 'UploadContext':
        """
        Create from the ``data`` of a successful session creation.

        Raises:
            ValueError: If the response lacks a session id
        """
        if not isinstance(data, dict) or not data.get('sessionID'):
            raise ValueError("session response has no sessionID")

        chunk_size = int(data.get('chunkSize') or 0)
        expires = data.get('expires')
        now = datetime.now()
        return cls(
            session_id=str(data['sessionID']),
            policy=policy,
            chunk_size=chunk_size,
            total_chunks=count_chunks(file_size, chunk_size),
            file_size=file_size,
            created_at=now,
            expires_at=_from_timestamp(expires) if expires else None,
            task_key=task_key,
            upload_urls=list(data.get('uploadURLs') or []),
            credential=data.get('credential') or '',
            upload_id=data.get('uploadID') or '',
            callback_secret=data.get('callback') or '',
            complete_url=data.get('completeURL') or '',
            upload_policy=data.get('policy') or '',
            access_key=data.get('ak') or '',
            key_time=data.get('keyTime') or '',
            path=data.get('path') or '',
        )

    @property
    def is_active(self) -> bool:
        return self.state == ContextState.ACTIVE

    @property
    def is_complete(self) -> bool:
        return len(self.acknowledged) >= self.total_chunks

    def is_expired(self, now: Optional[datetime] = None, margin: float = 0.0) -> bool:
        """True once the backend TTL (minus ``margin`` seconds) has passed."""
        if self.state == ContextState.EXPIRED:
            return True
        if self.expires_at is None:
            return False
        now = now or datetime.now()
        return now >= self.expires_at - timedelta(seconds=margin)

    def pending_indices(self) -> List[int]:
        """Chunk indices not yet acknowledged, in order."""
        return [i for i in range(self.total_chunks) if i not in self.acknowledged]

    def acknowledge(self, index: int, tag: Optional[str] = None) -> bool:
        """
        Record chunk ``index`` as stored by the backend.

        Acknowledging the same chunk twice has no further effect.

        Returns:
            True if the chunk was not acknowledged before
        """
        if not 0 <= index < self.total_chunks:
            raise IndexError(f"chunk {index} out of range 0..{self.total_chunks - 1}")
        if tag:
            self.parts[index] = tag
        if index in self.acknowledged:
            return False
        self.acknowledged.add(index)
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'session_id': self.session_id,
            'policy': self.policy.to_dict(),
            'chunk_size': self.chunk_size,
            'total_chunks': self.total_chunks,
            'file_size': self.file_size,
            'acknowledged': sorted(self.acknowledged),
            'created_at': self.created_at.isoformat(),
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'state': self.state.value,
            'task_key': self.task_key,
            'upload_urls': list(self.upload_urls),
            'credential': self.credential,
            'upload_id': self.upload_id,
            'callback_secret': self.callback_secret,
            'complete_url': self.complete_url,
            'upload_policy': self.upload_policy,
            'access_key': self.access_key,
            'key_time': self.key_time,
            'path': self.path,
            'parts': {str(k): v for k, v in self.parts.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploadContext':
        """
        Create from dictionary.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        _expect(data, dict, "context record")
        parts = _expect(data.get('parts') or {}, dict, "parts")
        return cls(
            session_id=data['session_id'],
            policy=Policy.from_dict(data['policy']),
            chunk_size=int(data['chunk_size']),
            total_chunks=int(data['total_chunks']),
            file_size=int(data.get('file_size', 0)),
            acknowledged={int(i) for i in _expect(data.get('acknowledged', []), list, "acknowledged")},
            created_at=datetime.fromisoformat(data['created_at']),
            expires_at=datetime.fromisoformat(data['expires_at']) if data.get('expires_at') else None,
            state=ContextState(data.get('state', ContextState.ACTIVE.value)),
            task_key=data.get('task_key', ''),
            upload_urls=list(_expect(data.get('upload_urls', []), list, "upload_urls")),
            credential=data.get('credential', ''),
            upload_id=data.get('upload_id', ''),
            callback_secret=data.get('callback_secret', ''),
            complete_url=data.get('complete_url', ''),
            upload_policy=data.get('upload_policy', ''),
            access_key=data.get('access_key', ''),
            key_time=data.get('key_time', ''),
            path=data.get('path', ''),
            parts={int(k): str(v) for k, v in parts.items()},
        )

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> 'UploadContext':
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))
