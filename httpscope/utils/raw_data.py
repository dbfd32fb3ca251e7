"""
Raw data blobs read from and written to HTTP clients
"""
import gzip
import json
import zlib
from dataclasses import dataclass
from typing import Any, Optional
from werkzeug.wrappers import Request
from ..config.logging_config import get_context_logger
from ..config.settings import settings
from ..core.diagnostics import diagnostics_from
from ..core.handler import ResponseWriter
from ..core.scope import Scope
from ..exceptions.custom_exceptions import bad_request, server_error

# Content encodings
IDENTITY = "identity"
DEFLATE = "deflate"
GZIP = "gzip"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Content shorter than this is not worth compressing
MIN_COMPRESS_LENGTH = 32


@dataclass
class RawData:
    """A data blob with its content type and content encoding"""
    content_type: str = DEFAULT_CONTENT_TYPE
    content_encoding: str = IDENTITY
    content: bytes = b""
    uncompressed_length: int = 0

    @property
    def is_compressed(self) -> bool:
        return (self.content_encoding or IDENTITY) != IDENTITY

    def read_request(self, scope: Scope, request: Request, max_length: Optional[int] = None) -> None:
        """
        Read the request body

        Args:
            scope: Scope of the request
            request: Request to read from
            max_length: Largest body accepted, defaults to settings.max_content_length

        Raises:
            HTTPScopeError: 400 if Content-Length is invalid or the body is too large
        """
        log = get_context_logger(__name__, diagnostics_from(request))
        max_length = max_length or settings.max_content_length
        scope.raise_if_cancelled()

        content_length = request.headers.get("Content-Length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                length = -1
            if length < 0:
                log.warning("Invalid content-length", fields={"content-length": content_length})
                raise bad_request("invalid content-length")
            if length >= max_length:
                log.warning("Max length exceeded", fields={"max_length": max_length})
                raise bad_request("max length exceeded")

            content = request.stream.read(length)
            if len(content) != length:
                log.warning("Cannot read content", fields={"expected": length, "actual": len(content)})
                raise bad_request("cannot read content")
        else:
            content = request.stream.read(max_length)
            if len(content) >= max_length:
                log.warning("Max length exceeded", fields={"max_length": max_length})
                raise bad_request("max length exceeded")

        self.content = content

        # HTTP does not define Content-Encoding for requests, but it is handy
        # to let clients send compressed content.
        encoding = request.headers.get("Content-Encoding")
        if encoding:
            self.content_encoding = encoding
            self.uncompressed_length = 0  # not known
        else:
            self.content_encoding = IDENTITY
            self.uncompressed_length = len(self.content)

        self.content_type = request.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE

    def write_response(self, scope: Scope, writer: ResponseWriter, request: Request) -> None:
        """
        Write the content to the client

        Compressed content is decompressed first if the client does not
        accept its encoding. Empty content is sent as 204 No Content.
        """
        log = get_context_logger(__name__, diagnostics_from(request))
        scope.raise_if_cancelled()

        # TODO: parse q-values, "deflate;q=0" is currently read as accepting deflate
        if self.is_compressed:
            accept_encoding = request.headers.get("Accept-Encoding", "")
            if self.content_encoding not in accept_encoding:
                self.decompress()

        if not self.content:
            writer.headers["Content-Length"] = "0"
            writer.headers.pop("Content-Type", None)
            writer.headers.pop("Content-Encoding", None)
            writer.write_header(204)
            return

        if self.is_compressed:
            writer.headers["Content-Encoding"] = self.content_encoding
        else:
            writer.headers.pop("Content-Encoding", None)
        writer.headers["Content-Type"] = self.content_type
        writer.headers["Content-Length"] = str(len(self.content))

        # Once writing has started there is no way to report an error to
        # the client, so failures are only logged.
        try:
            written = writer.write(self.content)
        except OSError as e:
            log.warning("Cannot write response", fields={"error": str(e)})
            return
        if written != len(self.content):
            log.warning("Not all bytes sent", fields={"expected": len(self.content), "actual": written})

    def decompress(self) -> None:
        """
        Decompress the content in place

        Raises:
            HTTPScopeError: 500 for an unknown content encoding, 400 for corrupt content
        """
        if not self.is_compressed:
            return
        try:
            if self.content_encoding == DEFLATE:
                content = zlib.decompress(self.content, -zlib.MAX_WBITS)
            elif self.content_encoding == GZIP:
                content = gzip.decompress(self.content)
            else:
                raise server_error(f"unknown content-encoding: {self.content_encoding}")
        except (OSError, EOFError, zlib.error) as e:
            raise bad_request(f"cannot decompress content: {e}")
        self.content = content
        self.content_encoding = IDENTITY
        self.uncompressed_length = len(content)

    def compress(self) -> None:
        """Deflate the content in place, if it is worth doing"""
        if self.is_compressed or len(self.content) < MIN_COMPRESS_LENGTH:
            return
        compressor = zlib.compressobj(zlib.Z_BEST_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS)
        compressed = compressor.compress(self.content) + compressor.flush()
        if len(compressed) < len(self.content):
            self.uncompressed_length = len(self.content)
            self.content = compressed
            self.content_encoding = DEFLATE

    def unmarshal_to(self) -> Any:
        """Decode the content as JSON"""
        self.decompress()
        return json.loads(self.content)

    def marshal_from(self, value: Any) -> None:
        """Replace the content with value encoded as JSON"""
        self.content = json.dumps(value, separators=(",", ":")).encode("utf-8")
        self.content_type = "application/json"
        self.content_encoding = IDENTITY
        self.uncompressed_length = len(self.content)
