"""API Routes Package."""

from api.routes import health, imports

__all__ = [
    "health",
    "imports",
]
