from __future__ import annotations


class PartBuffer:
    """Accumulates input bytes and cuts them into numbered parts.

    A part is ready once the accumulator is strictly larger than ``part_size``.
    Ready parts are exactly ``part_size`` bytes; the remainder stays buffered
    until more input arrives or the input ends.
    """

    def __init__(self, part_size: int) -> None:
        self.part_size = part_size
        self._buffer = bytearray()
        self._next_part_number = 1
        self.bytes_received = 0
        self.bytes_dispatched = 0

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def parts_taken(self) -> int:
        return self._next_part_number - 1

    def append(self, data: bytes | bytearray | memoryview) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            data = bytes(data)
        self._buffer.extend(data)
        self.bytes_received += len(data)

    def ready(self) -> bool:
        return len(self._buffer) > self.part_size

    def take_part(self, *, final: bool = False) -> tuple[int, bytes] | None:
        if len(self._buffer) > self.part_size:
            data = bytes(self._buffer[: self.part_size])
            del self._buffer[: self.part_size]
        elif final and (self._buffer or self.parts_taken == 0):
            # an empty stream still becomes a single empty part
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            return None

        part_number = self._next_part_number
        self._next_part_number += 1
        self.bytes_dispatched += len(data)
        return part_number, data


__all__ = ["PartBuffer"]
