"""
Example streaming a generated file through the thread pool runtime.

Set PARTSTREAM_GATEWAY_URL (and PARTSTREAM_TOKEN) to upload to a multipart
gateway; otherwise the upload goes to an in-memory store.

Demonstrates:
- stream_upload() with a generator as the source
- Per-part acknowledgements through on_part_uploaded
- Driving StreamingUpload.results() yourself with your own executor
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor

from partstream import (
    InMemoryObjectStore,
    PartResult,
    StreamingUpload,
    SyncHttpObjectStore,
    UploadConfig,
    stream_upload,
)

logging.basicConfig(level=logging.INFO)

gateway = os.getenv("PARTSTREAM_GATEWAY_URL")
store = SyncHttpObjectStore(gateway) if gateway else InMemoryObjectStore()

# 5 MiB parts, at most 4 in flight
config = UploadConfig(part_size=5 * 1024 * 1024, max_queue_size=4)


def generate(total_mb: int):
    """Yield 64 KiB chunks, the way a socket or a pipe would."""
    block = os.urandom(64 * 1024)
    for _ in range(total_mb * 16):
        yield block


def on_part_uploaded(result: PartResult) -> None:
    print(f"  part {result.part_number}: {result.size} bytes, etag {result.etag[:12]}...")


def simple_example():
    print("=== stream_upload ===\n")
    manifest = stream_upload(
        store,
        "examples",
        "generated-sync.bin",
        generate(18),
        config=config,
        on_part_uploaded=on_part_uploaded,
    )
    print(f"\nCompleted {len(manifest.parts)} parts")
    print(f"  Location: {manifest.location}")
    print(f"  ETag: {manifest.etag}\n")


def results_example():
    print("=== StreamingUpload.results ===\n")
    with ThreadPoolExecutor(max_workers=config.max_queue_size) as executor:
        upload = StreamingUpload.begin(
            store, "examples", "generated-results.bin", executor=executor, config=config
        )
        print(f"Upload ID: {upload.upload_id}")
        uploaded = 0
        for result in upload.results(generate(12)):
            uploaded += result.size
            print(f"  {uploaded / (1024 * 1024):.1f} MiB acknowledged")
        manifest = upload.handle.result()
    print(f"\nCompleted {len(manifest.parts)} parts at {manifest.location}")


if __name__ == "__main__":
    simple_example()
    results_example()
