from .handle import AsyncUploadHandle as UploadHandle
from .stores import AsyncHttpObjectStore as HttpObjectStore
from .upload import (
    AsyncStreamingUpload as StreamingUpload,
    stream_upload_async as stream_upload,
)

__all__ = [
    "StreamingUpload",
    "UploadHandle",
    "HttpObjectStore",
    "stream_upload",
]
