"""Grievance persistence."""

from typing import Optional

from gte.config import Settings
from gte.store.base import GrievanceFilter, GrievanceStore
from gte.store.memory import InMemoryGrievanceStore


def build_store(settings: Optional[Settings] = None) -> GrievanceStore:
    """Construct the store selected by STORE_BACKEND."""
    settings = settings or Settings()
    if settings.store_backend == "memory":
        return InMemoryGrievanceStore()
    if settings.store_backend == "postgres":
        from gte.store.postgres import PostgresGrievanceStore

        return PostgresGrievanceStore(settings)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend!r}")


__all__ = ["GrievanceFilter", "GrievanceStore", "InMemoryGrievanceStore", "build_store"]
