"""
Example streaming an async source through the anyio runtime.

Set PARTSTREAM_GATEWAY_URL (and PARTSTREAM_TOKEN) to upload to a multipart
gateway; otherwise the upload goes to an in-memory store.

Demonstrates:
- stream_upload_async() with an async generator as the source
- Running AsyncStreamingUpload in your own task group
- Aborting an upload from another task
"""

import logging
import os

import anyio

from partstream import (
    AsyncHttpObjectStore,
    AsyncStreamingUpload,
    InMemoryObjectStore,
    PartResult,
    UploadAbortedError,
    UploadConfig,
    stream_upload_async,
)

logging.basicConfig(level=logging.INFO)

config = UploadConfig(part_size=5 * 1024 * 1024, max_queue_size=4)


async def generate(total_mb: int):
    block = os.urandom(64 * 1024)
    for _ in range(total_mb * 16):
        await anyio.sleep(0)
        yield block


async def on_part_uploaded(result: PartResult) -> None:
    print(f"  part {result.part_number}: {result.size} bytes")


async def simple_example(store):
    print("=== stream_upload_async ===\n")
    manifest = await stream_upload_async(
        store,
        "examples",
        "generated-async.bin",
        generate(18),
        config=config,
        on_part_uploaded=on_part_uploaded,
    )
    print(f"\nCompleted {len(manifest.parts)} parts at {manifest.location}\n")


async def abort_example(store):
    print("=== Aborting from another task ===\n")
    async with anyio.create_task_group() as tg:
        upload = await AsyncStreamingUpload.begin(
            store, "examples", "aborted.bin", task_group=tg, config=config
        )

        async def stop_soon():
            await anyio.sleep(0.05)
            await upload.abort()

        tg.start_soon(stop_soon)
        try:
            await upload.run(generate(100))
        except UploadAbortedError as exc:
            print(f"Upload {upload.upload_id} aborted: {exc}")


async def main():
    gateway = os.getenv("PARTSTREAM_GATEWAY_URL")
    if gateway:
        store = AsyncHttpObjectStore(gateway)
        try:
            await simple_example(store)
            await abort_example(store)
        finally:
            await store.aclose()
    else:
        store = InMemoryObjectStore()
        await simple_example(store)
        await abort_example(store)


if __name__ == "__main__":
    anyio.run(main)
