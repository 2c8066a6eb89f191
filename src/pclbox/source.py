"""
Seekable byte sources the PCL parser reads from.

Three strategies share one read/seek/tell contract so the parser never needs to know
which one backs it:

- BufferByteSource: the whole content held in memory (bytes-like input, small streams).
- MappedByteSource: read-only memory map of a regular file.
- StreamByteSource: sequential reads; seeking backwards rewinds to the start of the
  stream and skips forward, seeking forwards skips.

open_source() picks a strategy from the resource type and its measured size.
Offsets are always absolute from the start of the resource.
"""

from __future__ import annotations

import io
import logging
import mmap
import os
import stat
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Optional, Union

from .errors import PositioningError, ResourceError

log = logging.getLogger(__name__)

# Largest file that gets memory-mapped; bigger inputs are streamed.
DEFAULT_MAX_MAPPED_SIZE = 2**31 - 2
# Largest non-file stream that is slurped into memory.
DEFAULT_MAX_BUFFERED_SIZE = 64 * 1024 * 1024
SKIP_CHUNK_SIZE = 64 * 1024

BytesLike = Union[bytes, bytearray, memoryview]


def _describe(stream: Any) -> str:
    return str(getattr(stream, "name", type(stream).__name__))


def _fileno(stream: Any) -> Optional[int]:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _is_seekable(stream: Any) -> bool:
    try:
        return bool(stream.seekable())
    except (AttributeError, OSError, ValueError):
        return False


class ByteSource(ABC):
    """
    Random-access reader over exactly one backing resource.

    Sources are context managers; leaving the ``with`` block releases the resource.
    Every operation after close() raises ResourceError.
    """

    def __init__(self) -> None:
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def read(self) -> Optional[int]:
        """Return the next byte and advance by one, or None at end of data."""

    @abstractmethod
    def readinto(self, buffer: bytearray) -> Optional[int]:
        """
        Copy as many bytes as available into ``buffer``.

        Args:
            buffer: Writable buffer; its length is the maximum number of bytes read.

        Returns:
            Number of bytes copied, or None when called at end of data.
        """

    @abstractmethod
    def seek(self, offset: int) -> None:
        """
        Reposition to an absolute offset.

        Raises:
            PositioningError: If the backing resource cannot reach ``offset``.
        """

    @abstractmethod
    def tell(self) -> int:
        """Return the absolute read position."""

    @abstractmethod
    def _release(self) -> None:
        """Release the backing resource. Called once by close()."""

    def close(self) -> None:
        """Release the backing resource; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._release()

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceError(f"{type(self).__name__} is closed")

    def __enter__(self) -> "ByteSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class _RandomAccessSource(ByteSource):
    """Shared read/seek logic for sources whose whole extent is addressable."""

    def __init__(self, view: Any) -> None:
        super().__init__()
        self._view = view
        self._size = len(view)
        self._position = 0

    @property
    def size(self) -> int:
        return self._size

    def read(self) -> Optional[int]:
        self._check_open()
        if self._position >= self._size:
            return None
        value = self._view[self._position]
        self._position += 1
        return value

    def readinto(self, buffer: bytearray) -> Optional[int]:
        self._check_open()
        if self._position >= self._size:
            return None
        count = min(len(buffer), self._size - self._position)
        buffer[:count] = self._view[self._position : self._position + count]
        self._position += count
        return count

    def seek(self, offset: int) -> None:
        self._check_open()
        if offset < 0 or offset > self._size:
            raise PositioningError(offset, f"outside of the data extent 0..{self._size}")
        self._position = offset

    def tell(self) -> int:
        self._check_open()
        return self._position


class BufferByteSource(_RandomAccessSource):
    """In-memory source; the input is copied so callers may reuse their buffer."""

    def __init__(self, data: BytesLike) -> None:
        super().__init__(bytes(data))

    def _release(self) -> None:
        self._view = b""


class MappedByteSource(_RandomAccessSource):
    """
    Read-only memory map over the file behind ``stream``.

    The source owns ``stream`` and closes it together with the map.
    """

    def __init__(self, stream: BinaryIO) -> None:
        try:
            mapped = mmap.mmap(stream.fileno(), 0, access=mmap.ACCESS_READ)
        except (OSError, ValueError) as exc:
            raise ResourceError(f"Unable to memory-map {_describe(stream)}: {exc}") from exc
        super().__init__(mapped)
        self._mapped = mapped
        self._stream = stream

    def _release(self) -> None:
        failures = []
        for release in (self._mapped.close, self._stream.close):
            try:
                release()
            except (OSError, ValueError, BufferError) as exc:
                failures.append(exc)
        if failures:
            raise ResourceError(
                f"Failed to release mapping of {_describe(self._stream)}: {failures[0]}"
            ) from failures[0]


class StreamByteSource(ByteSource):
    """
    Sequential source over a binary stream of unknown or very large size.

    Forward seeks skip by reading. Backward seeks need a seekable stream: it is rewound
    to its start and then skipped forward. The source owns ``stream`` and closes it.
    """

    def __init__(self, stream: BinaryIO) -> None:
        super().__init__()
        self._stream = stream
        self._position = 0
        if _is_seekable(stream):
            try:
                self._position = stream.tell()
            except OSError:
                log.debug("tell() failed on %s; assuming offset 0", _describe(stream))

    def _read_stream(self, count: int) -> bytes:
        try:
            data = self._stream.read(count)
        except (OSError, ValueError) as exc:
            raise ResourceError(f"Read from {_describe(self._stream)} failed: {exc}") from exc
        return data or b""

    def read(self) -> Optional[int]:
        self._check_open()
        data = self._read_stream(1)
        if not data:
            return None
        self._position += 1
        return data[0]

    def readinto(self, buffer: bytearray) -> Optional[int]:
        self._check_open()
        wanted = len(buffer)
        if wanted == 0:
            return 0
        filled = 0
        while filled < wanted:
            data = self._read_stream(wanted - filled)
            if not data:
                break
            buffer[filled : filled + len(data)] = data
            filled += len(data)
        self._position += filled
        if filled == 0:
            return None
        return filled

    def _skip(self, offset: int) -> None:
        remaining = offset - self._position
        while remaining > 0:
            data = self._read_stream(min(remaining, SKIP_CHUNK_SIZE))
            if not data:
                raise PositioningError(offset, f"data ends at offset {self._position}")
            self._position += len(data)
            remaining -= len(data)

    def _rewind(self, offset: int) -> None:
        try:
            self._stream.seek(0)
        except OSError as exc:
            raise PositioningError(offset, f"rewind failed: {exc}") from exc
        self._position = 0

    def seek(self, offset: int) -> None:
        """
        Reposition to ``offset``.

        A failed seek on a seekable stream leaves the position unchanged. A non-seekable
        stream cannot go back, so a forward seek past its end leaves it at end of data.
        """
        self._check_open()
        if offset < 0:
            raise PositioningError(offset, "negative offset")
        seekable = _is_seekable(self._stream)
        origin = self._position
        if offset < self._position:
            if not seekable:
                raise PositioningError(
                    offset, f"{_describe(self._stream)} does not support repositioning"
                )
            self._rewind(offset)
        try:
            self._skip(offset)
        except PositioningError:
            if seekable:
                self._rewind(origin)
                self._skip(origin)
            raise

    def tell(self) -> int:
        self._check_open()
        return self._position

    def _release(self) -> None:
        try:
            self._stream.close()
        except OSError as exc:
            raise ResourceError(f"Failed to close {_describe(self._stream)}: {exc}") from exc


def probe_size(stream: Any) -> Optional[int]:
    """
    Best-effort total size of the resource behind ``stream``.

    Regular files are measured with fstat, other seekable streams by seeking to their
    end (the position is restored). Anything else, or any failure, yields None.
    """
    fileno = _fileno(stream)
    if fileno is not None:
        try:
            st = os.fstat(fileno)
        except OSError as exc:
            log.debug("fstat failed on %s: %s", _describe(stream), exc)
            return None
        return st.st_size if stat.S_ISREG(st.st_mode) else None

    if not _is_seekable(stream):
        return None
    try:
        current = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(current)
    except (OSError, ValueError) as exc:
        log.debug("Size probe failed on %s: %s", _describe(stream), exc)
        return None
    return end


def _buffer_stream(stream: Any) -> BufferByteSource:
    try:
        try:
            if _is_seekable(stream):
                stream.seek(0)
            data = stream.read()
        finally:
            stream.close()
    except (OSError, ValueError) as exc:
        raise ResourceError(f"Unable to buffer {_describe(stream)}: {exc}") from exc
    return BufferByteSource(data or b"")


def open_source(
    resource: Union[BytesLike, str, "os.PathLike[str]", BinaryIO],
    *,
    max_mapped_size: int = DEFAULT_MAX_MAPPED_SIZE,
    max_buffered_size: int = DEFAULT_MAX_BUFFERED_SIZE,
) -> ByteSource:
    """
    Wrap ``resource`` in the byte source best suited to it.

    Args:
        resource: Bytes-like data, a file path, or a binary stream (ownership of the
            stream passes to the returned source).
        max_mapped_size: Largest regular file that is memory-mapped.
        max_buffered_size: Largest stream of known size that is read into memory.

    Returns:
        A BufferByteSource, MappedByteSource or StreamByteSource.

    Raises:
        ResourceError: If a path cannot be opened or a stream cannot be read.
        ValueError: On negative size limits.
    """
    if max_mapped_size < 0 or max_buffered_size < 0:
        raise ValueError("Size limits must not be negative")

    if isinstance(resource, (bytes, bytearray, memoryview)):
        return BufferByteSource(resource)

    if isinstance(resource, (str, os.PathLike)):
        try:
            stream: Any = open(resource, "rb")
        except OSError as exc:
            raise ResourceError(f"Unable to open {resource}: {exc}") from exc
    else:
        stream = resource

    size = probe_size(stream)
    if size is not None and 0 < size <= max_mapped_size and _fileno(stream) is not None:
        try:
            source: ByteSource = MappedByteSource(stream)
        except ResourceError as exc:
            log.debug("Falling back from memory mapping: %s", exc)
        else:
            log.debug("Memory-mapped %s (%d bytes)", _describe(stream), size)
            return source

    if size is not None and size <= max_buffered_size:
        log.debug("Buffering %s (%d bytes) in memory", _describe(stream), size)
        return _buffer_stream(stream)

    log.debug("Streaming %s sequentially (size %s)", _describe(stream), size)
    return StreamByteSource(stream)


__all__ = [
    "ByteSource",
    "BufferByteSource",
    "MappedByteSource",
    "StreamByteSource",
    "DEFAULT_MAX_MAPPED_SIZE",
    "DEFAULT_MAX_BUFFERED_SIZE",
    "open_source",
    "probe_size",
]
