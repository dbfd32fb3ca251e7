"""
Error rendering: turns a failed request into a response for the client
"""
import json
from http import HTTPStatus
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers import Request
from ..config.logging_config import get_context_logger
from ..core.diagnostics import diagnostics_from
from ..core.handler import ResponseWriter
from ..exceptions.custom_exceptions import error_code_of, status_code_of
from ..models.response_models import ErrorDetail, ErrorEnvelope

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def should_render_json(request: Request) -> bool:
    """
    Decide whether the client should get a JSON error response

    This is a weak reading of the Accept header, plus a path rule: anything
    under /api/ gets JSON, which is handy when using a browser during
    development.

    Args:
        request: The request that failed

    Returns:
        True for a JSON response, False for plain text
    """
    accept = request.headers.get("Accept", "")
    return JSON_CONTENT_TYPE in accept or request.path.startswith("/api/")


def render_error(writer: ResponseWriter, request: Request, failure: BaseException) -> None:
    """
    Send an error response to the client

    The message sent is str(failure). It is the handler's responsibility
    not to put sensitive information in it. Must only be called before
    the handler has started writing a response.

    Args:
        writer: Response sink for the request
        request: The request that failed
        failure: The error returned by the handler
    """
    log = get_context_logger(__name__, diagnostics_from(request))

    status = status_code_of(failure) or HTTPStatus.INTERNAL_SERVER_ERROR
    code = error_code_of(failure)

    # The error body is fresh content, whatever upstream handlers set
    writer.headers.pop("Content-Encoding", None)

    log.debug("Rendering error response", fields={"status": int(status), "code": code})

    try:
        if should_render_json(request):
            _render_json(writer, log, int(status), failure, code)
        else:
            _render_text(writer, int(status), failure)
    except OSError as e:
        log.warning("Failed to write error to client", fields={"error": str(e)})


def _describe(failure: BaseException) -> str:
    if isinstance(failure, HTTPException):
        return failure.description or failure.name
    return str(failure)


def _render_json(writer: ResponseWriter, log, status: int, failure: BaseException, code: str) -> None:
    # {"error":{"code":"xyz123","message":"message-here","status":400}}
    try:
        envelope = ErrorEnvelope(error=ErrorDetail(
            message=_describe(failure),
            status=status,
            code=code or None,
        ))
        body = json.dumps(
            envelope.model_dump(exclude_none=True),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")
    except Exception as e:  # noqa: BLE001
        # All that can be sent is the status code
        log.warning("Cannot serialize error response", fields={"error": repr(e)})
        body = b""

    writer.headers["Content-Type"] = JSON_CONTENT_TYPE
    writer.headers["X-Content-Type-Options"] = "nosniff"
    writer.headers["Content-Length"] = str(len(body))
    writer.write_header(status)
    if body:
        writer.write(body)


def _render_text(writer: ResponseWriter, status: int, failure: BaseException) -> None:
    try:
        message = _describe(failure)
    except Exception:  # noqa: BLE001
        message = type(failure).__name__
    writer.headers["Content-Type"] = TEXT_CONTENT_TYPE
    writer.headers["X-Content-Type-Options"] = "nosniff"
    writer.write_header(status)
    writer.write(f"{message}\n")
