"""
cloudup - Async resumable chunked uploads for cloud storage services.

Usage:
    >>> from cloudup import Uploader, UploaderConfig, Policy
    >>>
    >>> async with Uploader(UploaderConfig(api_base="https://drive.example/api/v3")) as uploader:
    ...     result = await uploader.upload("movie.mkv", Policy(id=1, type="s3"), "/videos")
    ...     print(result.session_id)
"""
import logging

# Upload
from .core.upload import (
    Uploader,
    UploadCoordinator,
    LocalFile,
    UploadProgress,
    UploadResult,
)

# Configuration
from .core.config import (
    UploaderConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    RetryConfig,
)
from .core.api import ApiClient, CancellationToken
from .core.policy import Policy, PolicyType

# Errors
from .core.errors import (
    UploaderError,
    ErrorKind,
    RetryTable,
    Ok,
    Err,
    Result,
)

# Session management
from .core.session import (
    SessionManager,
    UploadContext,
    ContextStore,
    SQLiteContextStore,
    MemoryContextStore,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for cloudup modules.

    This ensures that all cloudup loggers are properly configured
    to show log messages at the specified level.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'cloudup',
        'cloudup.api',
        'cloudup.policy',
        'cloudup.session',
        'cloudup.upload',
        'cloudup.upload.coordinator',
        'cloudup.upload.file',
        'cloudup.upload.adapters',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'Uploader',
    'UploadCoordinator',
    'LocalFile',
    'UploadProgress',
    'UploadResult',
    'UploaderConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',
    'ApiClient',
    'CancellationToken',
    'Policy',
    'PolicyType',
    'UploaderError',
    'ErrorKind',
    'RetryTable',
    'Ok',
    'Err',
    'Result',
    'SessionManager',
    'UploadContext',
    'ContextStore',
    'SQLiteContextStore',
    'MemoryContextStore',
    'setup_logging',
]
