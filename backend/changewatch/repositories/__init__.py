"""Repository implementations for data access."""

from changewatch.repositories.postgres import (
    PostgresChangeRepository,
    PostgresSnapshotRepository,
    PostgresSourceRepository,
)

__all__ = [
    "PostgresSourceRepository",
    "PostgresSnapshotRepository",
    "PostgresChangeRepository",
]
