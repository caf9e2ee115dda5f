import json

import pytest

from dockwire.exceptions import MalformedJson, UnexpectedEof
from dockwire.json_stream import NEED_MORE, JSONStreamDecoder, json_stream

VALUES = [
    {'status': 'Pulling from library/alpine', 'id': 'latest'},
    {'stream': 'Step 1/2 : FROM alpine\n'},
    {'nested': {'list': [1, 2, {'deep': None}], 'text': 'brace } and " quote \\ slash'}},
    [1, 'two', 3.5],
    'bare string with {braces}',
    42,
    -1.5e3,
    None,
    True,
    {'unicode': 'héllo ☃'},
]

CONCATENATED = b''.join(json.dumps(v).encode('utf-8') for v in VALUES[:4])
NEWLINE_JOINED = b'\n'.join(json.dumps(v).encode('utf-8') for v in VALUES) + b'\n'


def test_split_object_stream():
    chunks = [b'{"a', b'":1}{"b"', b':2}']
    assert list(json_stream(chunks)) == [{'a': 1}, {'b': 2}]


def test_newline_joined_values():
    assert list(json_stream([NEWLINE_JOINED])) == VALUES


@pytest.mark.parametrize('split', range(1, len(CONCATENATED)))
def test_any_split_point_concatenated(split):
    chunks = [CONCATENATED[:split], CONCATENATED[split:]]
    assert list(json_stream(chunks)) == VALUES[:4]


@pytest.mark.parametrize('split', range(1, len(NEWLINE_JOINED)))
def test_any_split_point_newline_joined(split):
    chunks = [NEWLINE_JOINED[:split], NEWLINE_JOINED[split:]]
    assert list(json_stream(chunks)) == VALUES


def test_byte_at_a_time():
    chunks = [NEWLINE_JOINED[i:i + 1] for i in range(len(NEWLINE_JOINED))]
    assert list(json_stream(chunks)) == VALUES


def test_escaped_quote_split_after_backslash():
    data = json.dumps({'msg': 'say \\"hi\\"'}).encode('utf-8')
    split = data.index(b'\\') + 1
    assert list(json_stream([data[:split], data[split:]])) == [{'msg': 'say \\"hi\\"'}]


def test_trailing_whitespace_ends_cleanly():
    assert list(json_stream([b'{"a":1}\r\n', b'  \n'])) == [{'a': 1}]


def test_empty_body():
    assert list(json_stream([])) == []


def test_next_value_reports_need_more():
    decoder = JSONStreamDecoder()
    decoder.feed(b'{"status": "Downlo')
    assert decoder.next_value() is NEED_MORE
    decoder.feed(b'ading"}\n{"x"')
    assert decoder.next_value() == {'status': 'Downloading'}
    assert decoder.next_value() is NEED_MORE
    assert decoder.pending == 4


def test_scalar_waits_for_delimiter():
    decoder = JSONStreamDecoder()
    decoder.feed(b'12')
    assert decoder.next_value() is NEED_MORE
    decoder.feed(b'3 ')
    assert decoder.next_value() == 123


def test_scalar_at_end_of_stream():
    assert list(json_stream([b'1 2', b'3'])) == [1, 23]


@pytest.mark.parametrize('data', [
    b'{"a": 1',
    b'{"a": [1, 2',
    b'"unterminated',
    b'{"a": "x\\',
    b'tru',
    b'-',
    b'1.',
])
def test_truncated_value_is_unexpected_eof(data):
    with pytest.raises(UnexpectedEof):
        list(json_stream([data]))


def test_values_before_truncation_are_delivered():
    received = []
    with pytest.raises(UnexpectedEof):
        for value in json_stream([b'{"a":1}\n{"b":']):
            received.append(value)
    assert received == [{'a': 1}]


@pytest.mark.parametrize('data', [
    b'<html>',
    b'}',
    b'{"a": 1]',
    b'{"a": tru}',
    b'{a: 1}',
    b'trueish',
    b'{"a": xyz',
    b'[1, 2,]',
    b'{"a" 1}',
    b'{"a": 01}',
])
def test_invalid_input_is_malformed_json(data):
    with pytest.raises(MalformedJson) as excinfo:
        list(json_stream([data]))
    assert excinfo.value.kind == 'malformed_json'
    assert 'offset' in excinfo.value.context


def test_malformed_offset_points_at_value():
    with pytest.raises(MalformedJson) as excinfo:
        list(json_stream([b'{"ok":true}\n<oops>']))
    assert excinfo.value.context['offset'] == 12


def test_feed_after_eof_rejected():
    decoder = JSONStreamDecoder()
    decoder.feed_eof()
    with pytest.raises(ValueError):
        decoder.feed(b'{}')


def test_garbage_inside_open_object_fails_before_eof():
    decoder = JSONStreamDecoder()
    decoder.feed(b'{"status": @@@ ' + b'x' * 100000)
    with pytest.raises(MalformedJson) as excinfo:
        decoder.next_value()
    assert excinfo.value.context['offset'] == 11


def test_bad_token_reported_when_it_arrives():
    decoder = JSONStreamDecoder()
    decoder.feed(b'{"id": "l1", "progress": 12')
    assert decoder.next_value() is NEED_MORE
    decoder.feed(b'x')
    with pytest.raises(MalformedJson):
        decoder.next_value()


def test_truncated_literal_inside_object_is_unexpected_eof():
    with pytest.raises(UnexpectedEof):
        list(json_stream([b'{"a": tru']))


def test_empty_containers():
    assert list(json_stream([b'{}[]{"a":[]}', b'\n{"b":{}}'])) == [{}, [], {'a': []}, {'b': {}}]
