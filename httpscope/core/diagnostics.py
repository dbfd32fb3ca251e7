"""
Request-scoped diagnostic context for log messages

A DiagnosticContext is an immutable chain of name/value pairs. Each call to
with_value() returns a new context that shares the existing chain, so a
context handed to a downstream handler can never be changed by it.
"""
from typing import Any, List, Optional, Tuple

from werkzeug.wrappers import Request

ENVIRON_KEY = "httpscope.diagnostics"


class DiagnosticContext:
    """Immutable chain of name/value pairs attached to log messages"""

    __slots__ = ("name", "value", "previous")

    def __init__(self, name: Optional[str] = None, value: Any = None,
                 previous: Optional["DiagnosticContext"] = None):
        self.name = name
        self.value = value
        self.previous = previous

    def with_value(self, name: str, value: Any) -> "DiagnosticContext":
        """Return a new context with name=value added"""
        return DiagnosticContext(name, value, self)

    def fields(self) -> List[Tuple[str, Any]]:
        """Flatten the chain into (name, value) pairs, most recent first"""
        result = []
        node = self
        while node is not None:
            if node.name is not None:
                result.append((node.name, node.value))
            node = node.previous
        return result

    def __bool__(self) -> bool:
        return self.name is not None or self.previous is not None

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={value!r}" for name, value in self.fields())
        return f"DiagnosticContext({inner})"


EMPTY = DiagnosticContext()


def diagnostics_from(request: Optional[Request]) -> DiagnosticContext:
    """Get the diagnostic context bound to a request, or an empty one"""
    if request is None:
        return EMPTY
    return request.environ.get(ENVIRON_KEY, EMPTY)


def bind_diagnostics(request: Request, context: DiagnosticContext) -> None:
    """Bind a diagnostic context to a request for downstream handlers"""
    request.environ[ENVIRON_KEY] = context
