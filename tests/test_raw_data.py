"""Raw data blobs: reading, compression and writing."""

import gzip
import zlib

import pytest

from httpscope.core.handler import ResponseWriter
from httpscope.core.scope import background
from httpscope.exceptions.custom_exceptions import HTTPScopeError
from httpscope.utils.raw_data import DEFLATE, GZIP, IDENTITY, RawData

DOCUMENT = b'{"items":[' + b",".join(b'"item"' for _ in range(20)) + b"]}"


def deflate(data):
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def test_read_request(make_request):
    request = make_request(method="POST", data=DOCUMENT, content_type="application/json")
    data = RawData()
    data.read_request(background(), request)

    assert data.content == DOCUMENT
    assert data.content_type == "application/json"
    assert data.content_encoding == IDENTITY
    assert data.uncompressed_length == len(DOCUMENT)


def test_read_compressed_request(make_request):
    request = make_request(method="POST", data=deflate(DOCUMENT),
                           headers={"Content-Encoding": "deflate"})
    data = RawData()
    data.read_request(background(), request)

    assert data.is_compressed
    assert data.uncompressed_length == 0
    assert data.content_type == "application/octet-stream"
    assert data.unmarshal_to() == {"items": ["item"] * 20}


def test_read_request_too_large(make_request):
    request = make_request(method="POST", data=b"x" * 100)
    with pytest.raises(HTTPScopeError) as exc_info:
        RawData().read_request(background(), request, max_length=100)
    assert exc_info.value.status_code() == 400
    assert str(exc_info.value) == "max length exceeded"


def test_read_request_invalid_content_length(make_request):
    request = make_request(method="POST", data=b"abc", headers={"Content-Length": "-3"})
    with pytest.raises(HTTPScopeError) as exc_info:
        RawData().read_request(background(), request)
    assert str(exc_info.value) == "invalid content-length"


def test_read_request_in_cancelled_scope(make_request):
    scope = background().with_cancel()
    scope.cancel()
    with pytest.raises(Exception) as exc_info:
        RawData().read_request(scope, make_request(method="POST", data=b"abc"))
    assert exc_info.value is scope.err


def test_compress_skips_short_content():
    data = RawData(content=b"short")
    data.compress()
    assert data.content_encoding == IDENTITY
    assert data.content == b"short"


def test_compress_and_decompress():
    data = RawData(content_type="application/json", content=DOCUMENT, uncompressed_length=len(DOCUMENT))
    data.compress()
    assert data.content_encoding == DEFLATE
    assert len(data.content) < len(DOCUMENT)
    assert data.uncompressed_length == len(DOCUMENT)

    data.decompress()
    assert data.content == DOCUMENT
    assert not data.is_compressed


def test_decompress_gzip():
    data = RawData(content_encoding=GZIP, content=gzip.compress(DOCUMENT))
    data.decompress()
    assert data.content == DOCUMENT


def test_decompress_unknown_encoding():
    data = RawData(content_encoding="br", content=b"...")
    with pytest.raises(HTTPScopeError) as exc_info:
        data.decompress()
    assert exc_info.value.status_code() == 500


def test_decompress_corrupt_content():
    data = RawData(content_encoding=DEFLATE, content=b"not deflated at all")
    with pytest.raises(HTTPScopeError) as exc_info:
        data.decompress()
    assert exc_info.value.status_code() == 400


def test_write_compressed_response(make_request, metrics_service):
    data = RawData(content_type="application/json", content=DOCUMENT)
    data.compress()
    writer = ResponseWriter(metrics_service)

    data.write_response(background(), writer, make_request(headers={"Accept-Encoding": "gzip, deflate"}))

    assert writer.status == 200
    assert writer.headers["Content-Encoding"] == "deflate"
    assert writer.headers["Content-Length"] == str(len(writer.body))
    assert zlib.decompress(writer.body, -zlib.MAX_WBITS) == DOCUMENT


def test_write_decompresses_for_client_without_deflate(make_request, metrics_service):
    data = RawData(content_type="application/json", content=DOCUMENT)
    data.compress()
    writer = ResponseWriter(metrics_service)
    writer.headers["Content-Encoding"] = "gzip"

    data.write_response(background(), writer, make_request())

    assert writer.body == DOCUMENT
    assert "Content-Encoding" not in writer.headers
    assert writer.headers["Content-Type"] == "application/json"


def test_write_empty_content(make_request, metrics_service):
    writer = ResponseWriter(metrics_service)
    writer.headers["Content-Type"] = "text/html"
    RawData().write_response(background(), writer, make_request())

    assert writer.status == 204
    assert writer.body == b""
    assert "Content-Type" not in writer.headers


def test_marshal_from():
    data = RawData(content_encoding=DEFLATE, content=b"old")
    data.marshal_from({"a": [1, 2]})
    assert data.content == b'{"a":[1,2]}'
    assert data.content_type == "application/json"
    assert data.content_encoding == IDENTITY
    assert data.uncompressed_length == len(data.content)
