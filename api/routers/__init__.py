"""API routers for all endpoints."""

from api.routers import (
    articles,
    dashboard,
    ingestion,
    kpis,
    system,
)

__all__ = [
    "articles",
    "dashboard",
    "ingestion",
    "kpis",
    "system",
]
