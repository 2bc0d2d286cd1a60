"""
Storage backend adapters.

``create_adapter`` picks the adapter for a policy; every adapter maps its
backend's native errors onto the uploader taxonomy.
"""
from typing import Dict, Optional, Type

from ...api import ApiClient
from ...errors import Err, Ok, Result, factories
from ...policy import Policy, PolicyType
from .base import BaseAdapter, parse_xml_error, xml_failure, json_failure
from .local import LocalAdapter, SlaveAdapter
from .onedrive import OneDriveAdapter
from .s3 import S3Adapter, OSSAdapter, complete_multipart_body
from .form import COSAdapter, UpyunAdapter
from .qiniu import QiniuAdapter

ADAPTERS: Dict[PolicyType, Type[BaseAdapter]] = {
    PolicyType.LOCAL: LocalAdapter,
    PolicyType.REMOTE: SlaveAdapter,
    PolicyType.ONEDRIVE: OneDriveAdapter,
    PolicyType.S3: S3Adapter,
    PolicyType.OSS: OSSAdapter,
    PolicyType.COS: COSAdapter,
    PolicyType.UPYUN: UpyunAdapter,
    PolicyType.QINIU: QiniuAdapter,
}


def create_adapter(policy: Optional[Policy], client: ApiClient) -> Result:
    """
    Adapter for ``policy``.

    Returns:
        ``Ok(adapter)``; ``Err(NoPolicySelected)`` for no policy;
        ``Err(UnknownPolicyType)`` for a type without an adapter
    """
    if policy is None:
        return Err(factories.no_policy_selected())

    adapter_class = ADAPTERS.get(policy.policy_type) if policy.policy_type else None
    if adapter_class is None:
        return Err(factories.unknown_policy_type(policy))

    return Ok(adapter_class(client))


__all__ = [
    'ADAPTERS',
    'create_adapter',
    'BaseAdapter',
    'LocalAdapter',
    'SlaveAdapter',
    'OneDriveAdapter',
    'S3Adapter',
    'OSSAdapter',
    'COSAdapter',
    'UpyunAdapter',
    'QiniuAdapter',
    'parse_xml_error',
    'xml_failure',
    'json_failure',
    'complete_multipart_body',
]
