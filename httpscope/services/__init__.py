"""
Service layer initialization
"""
from .metrics_service import MetricsService, metrics

__all__ = [
    'MetricsService',
    'metrics',
]
