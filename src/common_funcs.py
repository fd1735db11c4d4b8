import sys
from typing import Iterable


def xprint(*args, **kwargs) -> None:
    if "flush" not in kwargs:
        kwargs["flush"] = True

    if "file" not in kwargs:
        kwargs["file"] = sys.stderr

    print(*args, **kwargs)


def drain_into(source: Iterable[int], buffer: bytearray | memoryview) -> int:
    """
    Copy units from `source` into the fixed-size `buffer`, starting at index 0.

    Returns the number of units written. Raises BufferError if the source has more
    units than the buffer can hold. The buffer is never resized.
    """
    capacity = len(buffer)
    count = 0
    for unit in source:
        if count >= capacity:
            raise BufferError(f"Output does not fit in buffer of size {capacity}")
        buffer[count] = unit
        count += 1
    return count


def write_chunked(source: Iterable[int], writer, chunk_size: int = 4096) -> int:
    """
    Stream units from `source` to a binary writer through a fixed block of chunk_size.
    """
    block = bytearray(chunk_size)
    total = 0
    used = 0
    for unit in source:
        block[used] = unit
        used += 1
        if used == chunk_size:
            writer.write(block)
            total += used
            used = 0
    if used:
        writer.write(block[:used])
        total += used
    return total
