from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from .constants import (
    NAME_DELIMITER,
    SIZE_LE64,
    MAX_RECORD_SIZE,
    DEFAULT_BUFFER_SIZE,
)
from .errors import CorruptRecord, InvalidRecordName


# Record layout
#  - name bytes (os.fsencode of the base name), never empty, no NUL
#  - NUL delimiter
#  - size (size_struct, SIZE_LE64 unless told otherwise)
#  - payload[size]
# There is no trailer: a clean EOF at a record boundary ends the stream.


@dataclass
class RecordHeader:
    name: str
    size: int


@dataclass
class Record:
    name: str
    size: int
    payload: bytes


def encode_name(name: str) -> bytes:
    raw = os.fsencode(name)
    if not raw:
        raise InvalidRecordName("Record name may not be empty")
    if NAME_DELIMITER in raw:
        raise InvalidRecordName(f"Record name may not contain NUL: {name!r}")
    return raw


def encode_header(name: str, size: int, size_struct: struct.Struct = SIZE_LE64) -> bytes:
    if size < 0 or size > MAX_RECORD_SIZE:
        raise ValueError(f"Record size out of range: {size}")
    try:
        packed = size_struct.pack(size)
    except struct.error as exc:
        raise ValueError(f"Record size does not fit the size field: {size}") from exc
    return encode_name(name) + NAME_DELIMITER + packed


def write_record(
    f: BinaryIO,
    name: str,
    size: int,
    src: BinaryIO,
    size_struct: struct.Struct = SIZE_LE64,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    """Append one record, streaming exactly ``size`` payload bytes from ``src``.

    Returns the number of bytes written to ``f``. Raises CorruptRecord if
    ``src`` runs dry early, after the header has gone out; the caller decides
    what to do with the partial record.
    """
    hdr = encode_header(name, size, size_struct)
    f.write(hdr)
    remaining = size
    while remaining > 0:
        chunk = src.read(min(buffer_size, remaining))
        if not chunk:
            raise CorruptRecord(f"Source for {name!r} ended {remaining} bytes short of {size}")
        f.write(chunk)
        remaining -= len(chunk)
    return len(hdr) + size


def read_exact(f: BinaryIO, n: int) -> bytes:
    # A single read() may return less than asked for; keep going until filled.
    parts = []
    remaining = n
    while remaining > 0:
        b = f.read(remaining)
        if not b:
            raise EOFError(f"Unexpected EOF ({n - remaining} of {n} bytes read)")
        parts.append(b)
        remaining -= len(b)
    return b"".join(parts)


def _read_name(f: BinaryIO) -> Optional[bytes]:
    """Read name bytes up to and including the delimiter.

    Returns None at a clean end of stream (EOF before any byte), b"" for a
    bare delimiter, and raises CorruptRecord for a name cut off by EOF.
    """
    first = f.read(1)
    if not first:
        return None
    buf = bytearray()
    b = first
    while b != NAME_DELIMITER:
        buf += b
        b = f.read(1)
        if not b:
            raise CorruptRecord(f"Stream ended inside record name {bytes(buf)!r}")
    return bytes(buf)


def read_record_header(f: BinaryIO, size_struct: struct.Struct = SIZE_LE64) -> Optional[RecordHeader]:
    raw_name = _read_name(f)
    if not raw_name:
        # EOF at a record boundary, or the legacy empty-name end marker
        return None
    try:
        fixed = read_exact(f, size_struct.size)
    except EOFError as exc:
        raise CorruptRecord(f"Stream ended inside size field of {os.fsdecode(raw_name)!r}") from exc
    (size,) = size_struct.unpack(fixed)
    return RecordHeader(name=os.fsdecode(raw_name), size=size)


def iter_payload(f: BinaryIO, size: int, buffer_size: int = DEFAULT_BUFFER_SIZE) -> Iterator[bytes]:
    """Yield the next ``size`` payload bytes in chunks of at most ``buffer_size``."""
    remaining = size
    while remaining > 0:
        chunk = f.read(min(buffer_size, remaining))
        if not chunk:
            raise CorruptRecord(f"Declared size {size} exceeds remaining stream by {remaining} bytes")
        remaining -= len(chunk)
        yield chunk


def read_payload(f: BinaryIO, size: int) -> bytes:
    return b"".join(iter_payload(f, size))


def skip_payload(f: BinaryIO, size: int, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
    # Reads through the payload; a short stream raises CorruptRecord.
    for _chunk in iter_payload(f, size, buffer_size):
        pass


def read_record(f: BinaryIO, size_struct: struct.Struct = SIZE_LE64) -> Optional[Record]:
    hdr = read_record_header(f, size_struct)
    if hdr is None:
        return None
    return Record(name=hdr.name, size=hdr.size, payload=read_payload(f, hdr.size))
