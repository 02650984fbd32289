"""
Flat-file Todo service package.

Exposes the FastAPI app instance for convenience imports (todo_api.app).
"""

from .main import app  # noqa: F401
