"""
Controllers layer initialization
"""
from .health_controller import health_bp, public, admin

__all__ = ['health_bp', 'public', 'admin']
