"""
Webserver Package - Fingerprint Verification
FastAPI-based REST API running the verification pipeline in a thread pool.
"""

from .server import app
from .database import BiometricDatabase
from .logger import get_logger

__version__ = "1.0.0"
__all__ = ['app', 'BiometricDatabase', 'get_logger']
