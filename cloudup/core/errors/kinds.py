"""Closed set of uploader failure kinds."""
from enum import Enum


class ErrorKind(str, Enum):
    """
    Every failure in the upload pipeline is exactly one of these.

    Values are stable identifiers used in logs and for the retry table;
    never rename them.
    """
    INVALID_FILE = 'InvalidFile'
    NO_POLICY_SELECTED = 'NoPolicySelected'
    UNKNOWN_POLICY_TYPE = 'UnknownPolicyType'
    FAILED_CREATE_UPLOAD_SESSION = 'FailedCreateUploadSession'
    FAILED_DELETE_UPLOAD_SESSION = 'FailedDeleteUploadSession'
    HTTP_REQUEST_FAILED = 'HTTPRequestFailed'
    LOCAL_CHUNK_UPLOAD_FAILED = 'LocalChunkUploadFailed'
    SLAVE_CHUNK_UPLOAD_FAILED = 'SlaveChunkUploadFailed'
    WRITE_CTX_FAILED = 'WriteCtxFailed'
    REMOVE_CTX_FAILED = 'RemoveCtxFailed'
    READ_CTX_FAILED = 'ReadCtxFailed'
    INVALID_CTX_DATA = 'InvalidCtxData'
    CTX_EXPIRED = 'CtxExpired'
    REQUEST_CANCELED = 'RequestCanceled'
    PROCESSING_TASK_DUPLICATED = 'ProcessingTaskDuplicated'
    ONEDRIVE_CHUNK_UPLOAD_FAILED = 'OneDriveChunkUploadFailed'
    ONEDRIVE_EMPTY_FILE = 'OneDriveEmptyFile'
    FAILED_FINISH_ONEDRIVE_UPLOAD = 'FailedFinishOneDriveUpload'
    S3LIKE_CHUNK_UPLOAD_FAILED = 'S3LikeChunkUploadFailed'
    S3LIKE_UPLOAD_CALLBACK_FAILED = 'S3LikeUploadCallbackFailed'
    COS_UPLOAD_CALLBACK_FAILED = 'COSUploadCallbackFailed'
    COS_POST_UPLOAD_FAILED = 'COSPostUploadFailed'
    UPYUN_POST_UPLOAD_FAILED = 'UpyunPostUploadFailed'
    QINIU_CHUNK_UPLOAD_FAILED = 'QiniuChunkUploadFailed'
    FAILED_FINISH_OSS_UPLOAD = 'FailedFinishOSSUpload'
    FAILED_FINISH_QINIU_UPLOAD = 'FailedFinishQiniuUpload'
    FAILED_TRANSFORM_RESPONSE = 'FailedTransformResponse'

    def __str__(self) -> str:
        return self.value

