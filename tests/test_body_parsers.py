"""Tests for body and string parsers."""

import io

import pytest

from oasmachine.body_parsers import (
    BodyParserWrapper,
    FormUrlEncodedParser,
    JsonParser,
    TextParser,
    decode_bytes,
    extract_charset,
    read_body,
)
from oasmachine.exceptions import BodyParseError, HttpError
from oasmachine.streaming import BytesStreamBuffer


class TestCharset:
    def test_extract_charset(self):
        assert extract_charset('text/plain; charset="ISO-8859-1"') == "ISO-8859-1"
        assert extract_charset("text/plain") is None
        assert extract_charset(None) is None

    def test_decode_with_charset(self):
        assert decode_bytes("café".encode("latin1"), "text/plain; charset=latin1") == "café"

    def test_decode_falls_back_to_latin1(self):
        assert decode_bytes(b"caf\xe9") == "café"


class TestReadBody:
    def test_stream(self):
        assert read_body(io.BytesIO(b"abc"), 10) == b"abc"

    def test_too_large(self):
        with pytest.raises(HttpError) as exc_info:
            read_body(b"abcdef", 5)
        assert exc_info.value.status == 413
        assert exc_info.value.message == "Request body is larger than 5 bytes"

    def test_stream_too_large(self):
        with pytest.raises(HttpError):
            read_body(io.BytesIO(b"x" * 100), 10)


class TestParsers:
    def test_json(self):
        assert JsonParser().parse_string('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_invalid_json(self):
        with pytest.raises(BodyParseError) as exc_info:
            JsonParser().parse_string("{")
        assert exc_info.value.message.startswith("Invalid JSON - ")

    def test_text(self):
        assert TextParser().parse_string("hello") == "hello"

    def test_form(self):
        assert FormUrlEncodedParser().parse_string("a=1&b=2&b=3&c=") == {"a": "1", "b": ["2", "3"], "c": ""}

    def test_empty_form(self):
        assert FormUrlEncodedParser().parse_string("") == {}


class TestBodyParserWrapper:
    def test_parse_bytes(self):
        parser = BodyParserWrapper(JsonParser(), 100)
        assert parser.parse_body(b'{"a": 1}', "application/json") == {"a": 1}

    def test_parse_streamed_body(self):
        stream = BytesStreamBuffer()
        stream.write(b'{"a": ')
        stream.write(b"1}")
        stream.close_writing()

        assert stream.writing_finished
        assert BodyParserWrapper(JsonParser(), 100).parse_body(stream) == {"a": 1}

    def test_size_limit(self):
        with pytest.raises(HttpError):
            BodyParserWrapper(TextParser(), 3).parse_body("hello")
