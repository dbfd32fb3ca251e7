"""
Health check, metrics and example API endpoints
"""
import json
from typing import Optional
from flask import Blueprint
from werkzeug.wrappers import Request
from ..config.settings import settings
from ..core.handler import ResponseWriter
from ..core.scope import Scope, background
from ..exceptions.custom_exceptions import NOT_IMPLEMENTED, HTTPScopeError, bad_request
from ..middleware import context, request_logging, require_api_key, security_headers
from ..models.response_models import HealthResponse, MetricsResponse
from ..services.metrics_service import metrics
from ..utils.raw_data import RawData

SERVICE_NAME = 'httpscope'
VERSION = '1.0.0'

# Base scope for every request, cancelled when the server shuts down
server_scope = background().with_cancel()

# Middleware shared by every endpoint, and the admin stack that extends it
public = context(server_scope).use(request_logging, security_headers)
admin = public.use(require_api_key)

# Create blueprint
health_bp = Blueprint('health', __name__)


def _write_json(writer: ResponseWriter, payload: str, status: int = 200) -> None:
    body = payload.encode('utf-8')
    writer.headers['Content-Type'] = 'application/json'
    writer.headers['Content-Length'] = str(len(body))
    writer.write_header(status)
    writer.write(body)


def health_check(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
    """Basic health check endpoint"""
    response = HealthResponse(
        status='ok',
        service=SERVICE_NAME,
        environment=settings.environment,
        version=VERSION,
    )
    _write_json(writer, response.model_dump_json())
    return None


def metrics_report(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
    """Response counters by status code and duration"""
    response = MetricsResponse(**metrics.snapshot())
    _write_json(writer, response.model_dump_json())
    return None


def ping(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
    """Simple ping endpoint"""
    _write_json(writer, json.dumps({'status': 'pong'}))
    return None


def echo(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
    """Echo a JSON document back to the client, compressed when it accepts deflate"""
    data = RawData()
    try:
        data.read_request(scope, request)
    except HTTPScopeError as e:
        return e
    if data.content_type.split(';')[0].strip() != 'application/json':
        return bad_request('Content-Type must be application/json')
    try:
        document = data.unmarshal_to()
    except HTTPScopeError as e:
        return e
    except ValueError:
        return bad_request('invalid JSON document')

    data.marshal_from(document)
    data.compress()
    data.write_response(scope, writer, request)
    return None


def admin_status(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
    """Example endpoint behind API key authentication"""
    _write_json(writer, json.dumps({'status': 'ok', 'environment': settings.environment}))
    return None


def admin_reset(scope: Scope, writer: ResponseWriter, request: Request) -> Optional[BaseException]:
    """Placeholder for administrative resets"""
    return NOT_IMPLEMENTED


health_bp.add_url_rule('/health', 'health_check', public.view(health_check), methods=['GET'])
health_bp.add_url_rule('/metrics', 'metrics', public.view(metrics_report), methods=['GET'])
health_bp.add_url_rule('/api/ping', 'ping', public.view(ping), methods=['GET'])
health_bp.add_url_rule('/api/echo', 'echo', public.view(echo), methods=['POST'])
health_bp.add_url_rule('/api/admin', 'admin_status', admin.view(admin_status), methods=['GET'])
health_bp.add_url_rule('/api/admin/reset', 'admin_reset', admin.view(admin_reset), methods=['POST'])
