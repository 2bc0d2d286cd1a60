"""Service API client."""
from .models import ApiResponse, HttpResponse
from .cancellation import CancellationToken, OperationCanceled
from .client import ApiClient, unwrap_envelope

__all__ = [
    'ApiResponse',
    'HttpResponse',
    'CancellationToken',
    'OperationCanceled',
    'ApiClient',
    'unwrap_envelope',
]
