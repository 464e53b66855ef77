"""
API package for castcompat
"""

from .app import app, create_app
from .middleware import api_key_middleware

__all__ = [
    "app",
    "create_app",
    "api_key_middleware",
]
