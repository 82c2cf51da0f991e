"""
Example streaming a local file to S3 with boto3.

Requires the ``s3`` extra and AWS credentials in the environment.

    python examples/stream_upload_s3.py path/to/file my-bucket my/key.bin
"""

import sys

from partstream import UploadConfig, stream_upload
from partstream.stores.s3 import S3ObjectStore


def read_file(path: str, block_size: int = 1024 * 1024):
    with open(path, "rb") as f:
        while block := f.read(block_size):
            yield block


def main(path: str, bucket: str, key: str) -> None:
    store = S3ObjectStore(region_name="us-east-1")
    # S3 requires every part but the last to be at least 5 MiB
    config = UploadConfig(part_size=8 * 1024 * 1024, max_queue_size=6, part_retries=3)
    manifest = stream_upload(store, bucket, key, read_file(path), config=config)
    print(f"Uploaded {len(manifest.parts)} parts to {manifest.location}")


if __name__ == "__main__":
    main(*sys.argv[1:4])
