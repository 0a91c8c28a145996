"""FastAPI web boundary for the Appeal Prospect security core."""

from .main import create_app
from .settings import APISettings

__all__ = [
    "create_app",
    "APISettings",
]
