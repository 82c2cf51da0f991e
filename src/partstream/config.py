from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_PART_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_MAX_QUEUE_SIZE = 10
DEFAULT_PART_RETRIES = 2


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class UploadConfig:
    """Tuning knobs for a streaming multipart upload.

    Attributes:
        part_size: Accumulated bytes that must be exceeded before a part is cut.
        max_queue_size: Maximum number of parts dispatched but not yet finished.
        part_retries: Total number of attempts for each part (not retries after
            a first attempt).
    """

    part_size: int = DEFAULT_PART_SIZE
    max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE
    part_retries: int = DEFAULT_PART_RETRIES

    def __post_init__(self) -> None:
        for name in ("part_size", "max_queue_size", "part_retries"):
            value = getattr(self, name)
            if int(value) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {value}")

    @classmethod
    def from_env(cls) -> UploadConfig:
        return cls(
            part_size=_int_from_env("PARTSTREAM_PART_SIZE", DEFAULT_PART_SIZE),
            max_queue_size=_int_from_env("PARTSTREAM_MAX_QUEUE_SIZE", DEFAULT_MAX_QUEUE_SIZE),
            part_retries=_int_from_env("PARTSTREAM_PART_RETRIES", DEFAULT_PART_RETRIES),
        )


__all__ = [
    "UploadConfig",
    "DEFAULT_PART_SIZE",
    "DEFAULT_MAX_QUEUE_SIZE",
    "DEFAULT_PART_RETRIES",
]
