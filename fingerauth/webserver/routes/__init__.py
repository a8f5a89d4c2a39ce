"""Routes package - API endpoint modules"""

from .biometric_routes import router as biometric_router

__all__ = ['biometric_router']
