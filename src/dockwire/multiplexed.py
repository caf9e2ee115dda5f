"""
Multiplexed stream decoding
Splits the stdout/stderr frames of attach, logs and exec responses

Each frame is an 8 byte header followed by its payload:

    [1 byte stream type][3 bytes zero][4 bytes big-endian payload length]

Stream type 0 is stdin, 1 stdout, 2 stderr.
"""

import enum
import logging
import struct
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from .exceptions import MalformedFrame, UnexpectedEof

logger = logging.getLogger(__name__)

STREAM_HEADER_SIZE_BYTES = 8
_HEADER = struct.Struct('>BxxxL')


class StreamType(enum.IntEnum):
    STDIN = 0
    STDOUT = 1
    STDERR = 2


@dataclass(frozen=True)
class Frame:
    """One chunk of container output"""

    stream: StreamType
    data: bytes

    @property
    def is_stdout(self) -> bool:
        return self.stream is StreamType.STDOUT

    @property
    def is_stderr(self) -> bool:
        return self.stream is StreamType.STDERR

    def text(self, encoding: str = 'utf-8') -> str:
        return self.data.decode(encoding, errors='replace')


class FrameDecoder:
    """
    Resumable frame decoder

    Feed it network chunks in any sizes; ``next_frame()`` returns the next
    complete frame, or None when more bytes are needed. The buffer only ever
    holds the unconsumed tail, at most one partial frame once the complete
    frames have been taken out.

    Stdin frames (type 0) are consumed and dropped.
    """

    def __init__(self):
        self._buffer = bytearray()
        self._header: Optional[Tuple[StreamType, int]] = None
        self._eof = False
        self._offset = 0

    @property
    def pending(self) -> int:
        """Buffered bytes not yet emitted"""
        return len(self._buffer)

    def feed(self, data: bytes):
        if self._eof:
            raise ValueError("Cannot feed data after end of stream")
        self._buffer.extend(data)

    def feed_eof(self):
        """Mark the end of the underlying byte stream"""
        self._eof = True

    def _read_header(self) -> Tuple[StreamType, int]:
        tag, length = _HEADER.unpack_from(self._buffer)
        try:
            stream_type = StreamType(tag)
        except ValueError:
            raise MalformedFrame(
                f"Unknown stream type {tag} in frame header",
                offset=self._offset, header=bytes(self._buffer[:STREAM_HEADER_SIZE_BYTES]).hex()
            ) from None
        del self._buffer[:STREAM_HEADER_SIZE_BYTES]
        self._offset += STREAM_HEADER_SIZE_BYTES
        return stream_type, length

    def next_frame(self) -> Optional[Frame]:
        """
        Decode the next frame

        Returns:
            Frame, or None if more input is needed (or the stream ended cleanly)

        Raises:
            MalformedFrame: Stream type byte outside 0-2
            UnexpectedEof: Stream ended inside a header or payload
        """
        while True:
            if self._header is None:
                if len(self._buffer) < STREAM_HEADER_SIZE_BYTES:
                    if self._eof and self._buffer:
                        raise UnexpectedEof(
                            "Stream ended inside a frame header",
                            offset=self._offset, received=len(self._buffer),
                            expected=STREAM_HEADER_SIZE_BYTES
                        )
                    return None
                self._header = self._read_header()

            stream_type, length = self._header
            if len(self._buffer) < length:
                if self._eof:
                    raise UnexpectedEof(
                        "Stream ended inside a frame payload",
                        offset=self._offset, received=len(self._buffer), expected=length
                    )
                return None

            data = bytes(self._buffer[:length])
            del self._buffer[:length]
            self._offset += length
            self._header = None

            if stream_type is StreamType.STDIN:
                logger.debug(f"Dropping {length} byte stdin frame")
                continue
            return Frame(stream_type, data)

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.next_frame()
            if frame is None:
                return
            yield frame


def demux_stream(chunks: Iterable[bytes]) -> Iterator[Frame]:
    """
    Lazily decode frames from a chunk iterable

    A new chunk is pulled only after every frame completed by the previous
    chunks has been handed to the caller.

    Args:
        chunks: Raw body chunks, e.g. DockerResponse.iter_chunks()

    Yields:
        Frame objects in stream order
    """
    decoder = FrameDecoder()
    for chunk in chunks:
        decoder.feed(chunk)
        yield from decoder
    decoder.feed_eof()
    yield from decoder


def split_output(frames: Iterable[Frame]) -> Tuple[bytes, bytes]:
    """Collect frames into (stdout, stderr)"""
    stdout = bytearray()
    stderr = bytearray()
    for frame in frames:
        if frame.is_stderr:
            stderr.extend(frame.data)
        else:
            stdout.extend(frame.data)
    return bytes(stdout), bytes(stderr)


def join_output(frames: Iterable[Frame]) -> bytes:
    """Collect frames into one byte string, stdout and stderr interleaved"""
    return b''.join(frame.data for frame in frames)
