"""
JSON stream decoding
Progress, event and stats endpoints send JSON objects back to back, usually
newline separated, without an enclosing array. An object may be split over
any number of network reads.
"""

import json
import logging
import re
from typing import Any, Iterable, Iterator, List, Optional

from .exceptions import MalformedJson, UnexpectedEof

logger = logging.getLogger(__name__)

_WHITESPACE = b' \t\r\n'
_SCALAR_START = frozenset(b'-0123456789tfnNI')
_SCALAR_END = re.compile(rb'[\s{}\[\]",:]')
_STRING_SPECIAL = re.compile(rb'["\\]')
_NUMBER = re.compile(rb'-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?')
_PARTIAL_NUMBER = re.compile(
    rb'-?(?:(?:0|[1-9][0-9]*)(?:\.(?:[0-9]+(?:[eE][+-]?[0-9]*)?)?|[eE][+-]?[0-9]*)?)?'
)
_LITERALS = (b'true', b'false', b'null', b'NaN', b'Infinity', b'-Infinity')

_QUOTE = ord('"')
_BACKSLASH = ord('\\')
_COLON_BYTE = ord(':')
_COMMA_BYTE = ord(',')
_OBJECT_END = ord('}')
_OPENERS = {ord('{'): _OBJECT_END, ord('['): ord(']')}
_CLOSERS = frozenset(_OPENERS.values())

# What may come next inside a value
_VALUE = 'value'
_KEY = 'key'
_COLON = 'colon'
_COMMA = 'comma'


class _NeedMore:
    def __repr__(self):
        return 'NEED_MORE'


NEED_MORE = _NeedMore()


def _is_token(token: bytes) -> bool:
    return token in _LITERALS or _NUMBER.fullmatch(token) is not None


def _is_token_prefix(token: bytes) -> bool:
    return _PARTIAL_NUMBER.fullmatch(token) is not None or any(
        literal.startswith(token) for literal in _LITERALS
    )


class JSONStreamDecoder:
    """
    Resumable decoder for concatenated JSON values

    ``feed()`` appends network bytes, ``next_value()`` returns the next
    decoded value or ``NEED_MORE``. The end of the next value is found with a
    scan that follows the JSON grammar token by token and remembers where it
    stopped, so a large object arriving in many reads is scanned once, and a
    byte that cannot continue the value is reported as soon as it arrives
    instead of being buffered. The complete value is then handed to
    ``json.loads``.
    """

    def __init__(self):
        self._buffer = bytearray()
        self._eof = False
        self._offset = 0
        self._reset()

    def _reset(self):
        self._started = False
        self._scan = 0
        self._stack: List[int] = []
        self._expect = _VALUE
        self._may_close = False
        self._in_string = False
        self._string_is_key = False
        self._escape = False
        self._token_start: Optional[int] = None

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

    def _skip_whitespace(self):
        stripped = len(self._buffer) - len(self._buffer.lstrip(_WHITESPACE))
        if stripped:
            del self._buffer[:stripped]
            self._offset += stripped

    def _malformed(self, message: str, pos: int) -> MalformedJson:
        return MalformedJson(message, offset=self._offset + pos)

    def _check_token(self, end: int, complete: bool):
        token = bytes(self._buffer[self._token_start:end])
        if _is_token(token) or (not complete and _is_token_prefix(token)):
            return
        raise self._malformed(f"Invalid token {token[:32]!r} in JSON value", self._token_start)

    def _finish_value(self, end: int) -> Optional[int]:
        if not self._stack:
            return end
        self._expect = _COMMA
        return None

    def _close(self, byte: int, pos: int) -> Optional[int]:
        if not self._stack or self._stack[-1] != byte:
            raise self._malformed(f"Unbalanced {bytes([byte])!r} in JSON value", pos)
        self._stack.pop()
        return self._finish_value(pos + 1)

    def _scan_value(self) -> Optional[int]:
        buf = self._buffer
        size = len(buf)
        pos = self._scan
        end = None
        while end is None and pos < size:
            if self._in_string:
                if self._escape:
                    self._escape = False
                    pos += 1
                    continue
                match = _STRING_SPECIAL.search(buf, pos)
                if match is None:
                    pos = size
                    break
                pos = match.end()
                if buf[match.start()] == _BACKSLASH:
                    self._escape = True
                elif self._string_is_key:
                    self._in_string = False
                    self._expect = _COLON
                else:
                    self._in_string = False
                    end = self._finish_value(pos)
                continue

            if self._token_start is not None:
                match = _SCALAR_END.search(buf, pos)
                if match is None:
                    self._check_token(size, complete=False)
                    pos = size
                    break
                pos = match.start()
                self._check_token(pos, complete=True)
                self._token_start = None
                end = self._finish_value(pos)
                continue

            byte = buf[pos]
            if byte in _WHITESPACE:
                pos += 1
            elif self._expect == _COLON:
                if byte != _COLON_BYTE:
                    raise self._malformed(f"Expected ':' after object key, got {bytes([byte])!r}", pos)
                self._expect = _VALUE
                pos += 1
            elif self._expect == _COMMA:
                if byte == _COMMA_BYTE:
                    self._expect = _KEY if self._stack[-1] == _OBJECT_END else _VALUE
                    pos += 1
                elif byte in _CLOSERS:
                    end = self._close(byte, pos)
                    pos += 1
                else:
                    raise self._malformed(f"Expected ',' or closing bracket, got {bytes([byte])!r}", pos)
            elif self._may_close and byte in _CLOSERS:
                # Empty object or array
                self._may_close = False
                end = self._close(byte, pos)
                pos += 1
            elif byte == _QUOTE:
                self._may_close = False
                self._in_string = True
                self._string_is_key = self._expect == _KEY
                pos += 1
            elif self._expect == _KEY:
                raise self._malformed(f"Expected object key, got {bytes([byte])!r}", pos)
            elif byte in _OPENERS:
                self._stack.append(_OPENERS[byte])
                self._expect = _KEY if byte == ord('{') else _VALUE
                self._may_close = True
                pos += 1
            elif byte in _SCALAR_START:
                self._may_close = False
                self._token_start = pos
                pos += 1
            else:
                raise self._malformed(f"Unexpected byte {bytes([byte])!r} in JSON value", pos)

        self._scan = pos
        return end

    def _take(self, end: int) -> Any:
        raw = bytes(self._buffer[:end])
        del self._buffer[:end]
        offset = self._offset
        self._offset += end
        self._reset()
        try:
            return json.loads(raw)
        except ValueError as e:
            raise MalformedJson(f"Invalid JSON value: {e}", offset=offset) from e

    def next_value(self) -> Any:
        """
        Decode the next value

        Returns:
            Decoded value, or NEED_MORE when the buffer holds no complete value

        Raises:
            MalformedJson: Any parse failure other than running out of input,
                raised as soon as the offending byte has been fed
            UnexpectedEof: Stream ended inside a value
        """
        if not self._started:
            self._skip_whitespace()
            if not self._buffer:
                return NEED_MORE
            self._started = True

        end = self._scan_value()
        if end is not None:
            return self._take(end)
        if not self._eof:
            return NEED_MORE
        if self._token_start is not None and not self._stack:
            return self._take_last_scalar()
        raise UnexpectedEof(
            "Stream ended inside a JSON value",
            offset=self._offset, received=len(self._buffer)
        )

    def _take_last_scalar(self) -> Any:
        raw = bytes(self._buffer)
        if _is_token(raw):
            return self._take(len(raw))
        raise UnexpectedEof(
            f"Stream ended inside {raw.decode('ascii', errors='replace')!r}",
            offset=self._offset
        )

    def __iter__(self) -> Iterator[Any]:
        while True:
            value = self.next_value()
            if value is NEED_MORE:
                return
            yield value


def json_stream(chunks: Iterable[bytes]) -> Iterator[Any]:
    """
    Lazily decode JSON values from a chunk iterable

    Args:
        chunks: Raw body chunks, e.g. DockerResponse.iter_chunks()

    Yields:
        Decoded values in the order the daemon sent them
    """
    decoder = JSONStreamDecoder()
    for chunk in chunks:
        decoder.feed(chunk)
        yield from decoder
    decoder.feed_eof()
    yield from decoder
