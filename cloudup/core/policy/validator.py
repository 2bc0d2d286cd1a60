"""File validation against a storage policy."""
from ..errors import Err, Ok, Result, factories
from ..logging import get_logger
from ..utils import file_suffix
from .models import Policy

logger = get_logger('cloudup.policy')


class PolicyValidator:
    """
    Checks a file against the policy's size and suffix limits.

    Validation errors are never retryable; they carry the policy and the
    violated field so the message can state the exact limit.
    """

    def validate(self, file, policy: Policy) -> Result:
        """
        Validate ``file`` (anything with ``name`` and ``size``) for ``policy``.

        Returns:
            ``Ok(file)`` or ``Err`` with an ``InvalidFile`` error
        """
        if not policy.unlimited_size and file.size > policy.max_size:
            logger.debug(f"{file.name}: {file.size} bytes exceeds limit {policy.max_size}")
            return Err(factories.invalid_file(policy, 'size'))

        if policy.allowed_suffix and file_suffix(file.name) not in policy.allowed_suffix:
            logger.debug(f"{file.name}: suffix not in {policy.allowed_suffix}")
            return Err(factories.invalid_file(policy, 'suffix'))

        return Ok(file)
