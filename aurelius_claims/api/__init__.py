"""Public API routers exposed by the FastAPI application."""

from . import auth, claims, health

__all__ = [
    "auth",
    "claims",
    "health",
]
