import logging

import pytest

from partstream._internal.part_uploader import PartFailed, PartUploaded, PartUploader
from partstream.errors import ObjectStoreError, PartUploadError
from partstream.types import MultipartUploadSession


async def _session(store) -> MultipartUploadSession:
    upload_id = await store.create_multipart_upload("bucket", "key")
    return MultipartUploadSession(bucket="bucket", key="key", upload_id=upload_id)


@pytest.mark.asyncio
async def test_first_attempt_success(store) -> None:
    uploader = PartUploader(store, await _session(store), attempts=2)

    outcome = await uploader.upload(1, b"hello")

    assert isinstance(outcome, PartUploaded)
    assert outcome.part_number == 1
    assert outcome.size == 5
    assert store.attempts == {1: 1}


@pytest.mark.asyncio
async def test_retries_until_success(recording_store_cls, caplog) -> None:
    store = recording_store_cls(failures={1: 2})
    uploader = PartUploader(store, await _session(store), attempts=3)

    with caplog.at_level(logging.WARNING, logger="partstream"):
        outcome = await uploader.upload(1, b"x")

    assert isinstance(outcome, PartUploaded)
    assert store.attempts == {1: 3}
    assert sum("failed on attempt" in r.getMessage() for r in caplog.records) == 2


@pytest.mark.asyncio
async def test_attempt_budget_is_total_attempts(recording_store_cls) -> None:
    store = recording_store_cls(failures={4: 10})
    session = await _session(store)
    uploader = PartUploader(store, session, attempts=2)

    outcome = await uploader.upload(4, b"x")

    assert isinstance(outcome, PartFailed)
    assert store.attempts == {4: 2}
    error = outcome.error
    assert isinstance(error, PartUploadError)
    assert error.part_number == 4
    assert error.upload_id == session.upload_id
    assert error.attempts == 2
    assert "part 4" in str(error) and session.upload_id in str(error)
    assert isinstance(error.__cause__, ObjectStoreError)


@pytest.mark.asyncio
async def test_single_attempt_has_no_retry(recording_store_cls) -> None:
    store = recording_store_cls(failures={1: 1})
    uploader = PartUploader(store, await _session(store), attempts=1)

    outcome = await uploader.upload(1, b"x")

    assert isinstance(outcome, PartFailed)
    assert store.attempts == {1: 1}
