"""
Logging configuration
"""
import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple
from .settings import settings
from ..core.diagnostics import DiagnosticContext, EMPTY


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for development"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        if settings.is_development:
            color = self.COLORS.get(record.levelname, self.RESET)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that appends diagnostic fields to each message

    Messages stay constant and searchable; variable information is passed
    as fields and rendered as ", name=value" pairs after the message:

        log = ContextLogger(logger, diagnostics_from(request))
        log.warning("cannot write response", fields={"error": str(exc)})
    """

    def __init__(self, logger: logging.Logger, context: Optional[DiagnosticContext] = None):
        super().__init__(logger, {})
        self.context = context or EMPTY

    def with_value(self, name: str, value: Any) -> "ContextLogger":
        """Return a logger whose context has name=value added"""
        return ContextLogger(self.logger, self.context.with_value(name, value))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields: Dict[str, Any] = dict(kwargs.pop("fields", None) or {})
        for name, value in self.context.fields():
            fields.setdefault(name, value)
        if fields:
            msg = f"{msg}, " + ", ".join(f"{name}={value!r}" for name, value in fields.items())
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging() -> None:
    """Configure application logging"""

    # Root logger configuration
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Get root logger
    root_logger = logging.getLogger()

    # Use colored formatter in development
    if settings.is_development:
        for handler in root_logger.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setFormatter(ColoredFormatter(settings.log_format))

    logging.getLogger('werkzeug').setLevel(logging.WARNING)  # Reduce server noise

    setup_app_loggers()


def setup_app_loggers() -> None:
    """Set up application-specific loggers"""
    logging.getLogger('httpscope.core').setLevel(logging.DEBUG if settings.is_development else logging.INFO)
    logging.getLogger('httpscope.middleware').setLevel(logging.INFO)
    logging.getLogger('httpscope.controllers').setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance"""
    return logging.getLogger(name)


def get_context_logger(name: str, context: Optional[DiagnosticContext] = None) -> ContextLogger:
    """Get a logger that appends the fields of a diagnostic context"""
    return ContextLogger(logging.getLogger(name), context)
