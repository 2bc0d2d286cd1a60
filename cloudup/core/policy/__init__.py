"""Storage policies and file validation."""
from .models import Policy, PolicyType
from .validator import PolicyValidator

__all__ = [
    'Policy',
    'PolicyType',
    'PolicyValidator',
]
