"""Stream byte chunks into object storage as a concurrent multipart upload."""

from .config import UploadConfig
from .errors import (
    ChunkStateError,
    ConfigurationError,
    FinalizeError,
    ObjectStoreError,
    PartstreamError,
    PartUploadError,
    UploadAbortedError,
    UpstreamInputError,
)
from .handle import AsyncUploadHandle, UploadHandle
from .stores import (
    AsyncHttpObjectStore,
    InMemoryObjectStore,
    ObjectStore,
    SyncHttpObjectStore,
)
from .types import (
    ChunkCompleted,
    ChunkFailed,
    ChunkStarted,
    CompletedPart,
    MultipartUploadSession,
    PartResult,
    UploadChunk,
    UploadManifest,
)
from .upload import (
    AsyncStreamingUpload,
    StreamingUpload,
    stream_upload,
    stream_upload_async,
)

__version__ = "0.1.0"

__all__ = [
    # runtimes
    "StreamingUpload",
    "AsyncStreamingUpload",
    "stream_upload",
    "stream_upload_async",
    "UploadHandle",
    "AsyncUploadHandle",
    "UploadConfig",
    # stores
    "ObjectStore",
    "InMemoryObjectStore",
    "SyncHttpObjectStore",
    "AsyncHttpObjectStore",
    # types
    "MultipartUploadSession",
    "CompletedPart",
    "PartResult",
    "UploadManifest",
    "UploadChunk",
    "ChunkStarted",
    "ChunkCompleted",
    "ChunkFailed",
    # errors
    "PartstreamError",
    "ConfigurationError",
    "ObjectStoreError",
    "PartUploadError",
    "UpstreamInputError",
    "FinalizeError",
    "UploadAbortedError",
    "ChunkStateError",
]
