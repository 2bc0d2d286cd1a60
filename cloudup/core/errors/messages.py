"""
Default message templates.

Keys are ``ErrorKind`` values; validation errors use ``InvalidFile.size`` and
``InvalidFile.suffix``. A caller supplying translated templates uses the same
keys and placeholders.
"""
from typing import Callable, Dict, Mapping, Optional, Union

DEFAULT_MESSAGES: Dict[str, str] = {
    'InvalidFile.size': 'File size exceeds the storage policy limit of {max_size}',
    'InvalidFile.suffix': 'File type is not allowed by the storage policy, allowed extensions: {suffixes}',
    'NoPolicySelected': 'No storage policy selected',
    'UnknownPolicyType': 'Unknown storage policy type: {policy_type}',
    'FailedCreateUploadSession': 'Failed to create upload session',
    'FailedDeleteUploadSession': 'Failed to delete upload session',
    'HTTPRequestFailed': 'Request failed: {detail} ({url})',
    'LocalChunkUploadFailed': 'Failed to upload chunk [{index}]',
    'SlaveChunkUploadFailed': 'Failed to upload chunk [{index}]',
    'WriteCtxFailed': 'Failed to save upload context: {detail}',
    'RemoveCtxFailed': 'Failed to remove upload context: {detail}',
    'ReadCtxFailed': 'Failed to read upload context: {detail}',
    'InvalidCtxData': 'Invalid upload context: {detail}',
    'CtxExpired': 'Upload session has expired, start the upload again',
    'RequestCanceled': 'Request canceled',
    'ProcessingTaskDuplicated': 'An upload for this file is already in progress',
    'OneDriveChunkUploadFailed': 'Failed to upload chunk: {message}',
    'OneDriveEmptyFile': 'OneDrive does not accept empty files, create it from the web interface instead',
    'FailedFinishOneDriveUpload': 'Failed to finish upload',
    'S3LikeChunkUploadFailed': 'Failed to upload chunk: {message}',
    'S3LikeUploadCallbackFailed': 'Failed to run upload callback',
    'COSUploadCallbackFailed': 'Failed to run upload callback',
    'COSPostUploadFailed': 'Upload failed: {message} ({code})',
    'UpyunPostUploadFailed': 'Upload failed: {message}',
    'QiniuChunkUploadFailed': 'Failed to upload chunk: {message}',
    'FailedFinishOSSUpload': 'Failed to finish upload: {message} ({code})',
    'FailedFinishQiniuUpload': 'Failed to finish upload: {message}',
    'FailedTransformResponse': 'Failed to parse response: {reason} ({raw})',
}

# A catalog maps template keys to already translated templates
Catalog = Union[Mapping[str, str], Callable[[str], Optional[str]]]


class _Values(dict):
    """Leaves unknown placeholders empty instead of raising KeyError."""

    def __missing__(self, key):
        return ''


def lookup_template(key: str, catalog: Optional[Catalog] = None) -> str:
    """Find the template for ``key``, falling back to the English default."""
    template = None
    if callable(catalog):
        template = catalog(key)
    elif catalog is not None:
        template = catalog.get(key)
    return template or DEFAULT_MESSAGES.get(key, key)


def fill(template: str, values: Mapping[str, object]) -> str:
    """Interpolate ``values`` into ``template``."""
    return template.format_map(_Values(values))
