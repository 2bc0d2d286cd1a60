"""
Uploader configuration.

Dataclass configuration for the service API client, retry policy and chunk
dispatch. Extend by composing new config objects rather than editing these.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, FrozenSet
import ssl

from .errors import ErrorKind, RetryTable


@dataclass
class ProxyConfig:
    """
    Proxy configuration.

    Supports HTTP and HTTPS proxies.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def to_aiohttp_proxy(self) -> Optional[str]:
        """Convert to aiohttp proxy format."""
        if not self.url:
            return None

        if self.username and self.password:
            if '://' in self.url:
                protocol, rest = self.url.split('://', 1)
                return f"{protocol}://{self.username}:{self.password}@{rest}"

        return self.url


@dataclass
class SSLConfig:
    """SSL/TLS configuration."""
    verify: bool = True
    cert_file: Optional[str] = None
    key_file: Optional[str] = None
    ca_file: Optional[str] = None
    check_hostname: bool = True

    def create_ssl_context(self):
        """Create SSL context from configuration, or False to disable verification."""
        if not self.verify:
            return False

        context = ssl.create_default_context()

        if self.ca_file:
            context.load_verify_locations(self.ca_file)

        if self.cert_file:
            context.load_cert_chain(
                self.cert_file,
                keyfile=self.key_file
            )

        context.check_hostname = self.check_hostname

        return context


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    A timed out request surfaces as ``RequestCanceled`` (network initiated).
    """
    total: float = 600.0  # Whole request, including chunk body
    connect: float = 30.0
    sock_read: float = 120.0
    sock_connect: float = 30.0

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read,
            sock_connect=self.sock_connect
        )


def _default_kind_limits() -> Dict[ErrorKind, int]:
    # An unparseable response is retried once
    return {ErrorKind.FAILED_TRANSFORM_RESPONSE: 2}


@dataclass
class RetryConfig:
    """
    Retry configuration.

    Attributes:
        max_attempts: Attempts per operation, first try included
        base_delay: Delay before the first retry, seconds
        max_delay: Upper bound of the backoff delay
        exponential_base: Backoff growth factor
        table: Which kinds and service codes are retryable
        kind_attempt_limits: Tighter attempt caps for particular kinds
        duplicate_task_delays: Backoff schedule the facade follows when an
            upload for the same task is already running; empty to fail at once
    """
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 16.0
    exponential_base: float = 2.0
    table: RetryTable = field(default_factory=RetryTable.default)
    kind_attempt_limits: Dict[ErrorKind, int] = field(default_factory=_default_kind_limits)
    duplicate_task_delays: tuple = ()

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before retry number ``attempt`` (0-based)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)

    def attempts_for(self, kind: ErrorKind) -> int:
        """Attempt budget for a failure of ``kind``."""
        limit = self.kind_attempt_limits.get(kind)
        if limit is None:
            return self.max_attempts
        return min(limit, self.max_attempts)

    @classmethod
    def no_retry(cls) -> 'RetryConfig':
        """Configuration that never re-attempts."""
        return cls(max_attempts=1)


@dataclass
class UploaderConfig:
    """
    Complete uploader configuration.

    Attributes:
        api_base: Base URL of the service API, e.g. ``https://host/api/v3``
        max_concurrency: Upper bound on in-flight chunks, whatever the adapter allows
        expired_codes: Service API codes meaning the upload session expired
        context_ttl_margin: Seconds before ``expires_at`` at which a context
            is already treated as expired
    """
    api_base: str = 'http://localhost:5212/api/v3'

    user_agent: str = 'cloudup/1.0.0'

    # Chunk dispatch
    max_concurrency: int = 3
    expired_codes: FrozenSet[int] = frozenset({40011})
    context_ttl_margin: float = 0.0

    # Sub-configurations
    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    extra_headers: Dict[str, str] = field(default_factory=dict)

    log_level: int = 20  # logging.INFO

    # Connection pool settings
    limit_per_host: int = 10
    limit: int = 100

    def __post_init__(self):
        self.api_base = self.api_base.rstrip('/')

    @classmethod
    def default(cls) -> 'UploaderConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def with_proxy(cls, proxy_url: str, **kwargs) -> 'UploaderConfig':
        """Create configuration with proxy."""
        return cls(
            proxy=ProxyConfig(url=proxy_url),
            **kwargs
        )

    @classmethod
    def insecure(cls, **kwargs) -> 'UploaderConfig':
        """Create configuration with SSL verification disabled."""
        return cls(
            ssl=SSLConfig(verify=False, check_hostname=False),
            **kwargs
        )

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
            'ssl': self.ssl.create_ssl_context(),
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }

        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
