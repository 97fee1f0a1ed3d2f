"""
Middleware package for the panel's web application.
"""

from .errors import ErrorGuardMiddleware
from .security import SecurityHeadersMiddleware

__all__ = ["ErrorGuardMiddleware", "SecurityHeadersMiddleware"]
