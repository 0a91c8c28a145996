"""Route modules for the Appeal Prospect API."""

from . import admin, auth

__all__ = [
    "admin",
    "auth",
]
