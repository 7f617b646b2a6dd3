"""PostgreSQL repository implementations.

Thin synchronous wrappers over the three collections the pipeline touches.
Repositories flush but never commit; services own transaction boundaries.
"""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from changewatch.models import Change, DomSnapshot, Source


class PostgresSourceRepository:
    """PostgreSQL implementation of source repository."""

    def __init__(self, session: Session):
        self.session = session

    def get_active(self) -> list[Source]:
        """Get all active sources."""
        result = self.session.execute(
            select(Source).where(Source.is_active.is_(True)).order_by(Source.id.asc())
        )
        return list(result.scalars().all())

    def get_active_by_url(self, url: str) -> Source | None:
        """Get the active source monitoring a URL."""
        result = self.session.execute(
            select(Source).where(Source.url == url, Source.is_active.is_(True)).limit(1)
        )
        return result.scalar_one_or_none()

    def get_urls_by_ids(self, source_ids: list[int]) -> dict[int, str]:
        """Map source IDs to URLs in a single query."""
        if not source_ids:
            return {}
        result = self.session.execute(
            select(Source.id, Source.url).where(Source.id.in_(source_ids))
        )
        return {row.id: row.url for row in result}


class PostgresSnapshotRepository:
    """PostgreSQL implementation of snapshot repository."""

    def __init__(self, session: Session):
        self.session = session

    def get_latest(self, url: str, limit: int = 2) -> list[DomSnapshot]:
        """Get the most recent snapshots for a URL, newest first."""
        result = self.session.execute(
            select(DomSnapshot)
            .where(DomSnapshot.url == url)
            .order_by(DomSnapshot.captured_at.desc(), DomSnapshot.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    def get_by_ids(self, snapshot_ids: list[int]) -> list[DomSnapshot]:
        """Get snapshots by ID, ordered by ID."""
        result = self.session.execute(
            select(DomSnapshot)
            .where(DomSnapshot.id.in_(snapshot_ids))
            .order_by(DomSnapshot.id.asc())
        )
        return list(result.scalars().all())


class PostgresChangeRepository:
    """PostgreSQL implementation of change repository."""

    def __init__(self, session: Session):
        self.session = session

    def get_latest_for_source(self, source_id: int) -> Change | None:
        """Get the most recent change recorded for a source."""
        result = self.session.execute(
            select(Change)
            .where(Change.source_id == source_id)
            .order_by(Change.timestamp.desc(), Change.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def exists_for_pair(self, snapshot_id1: int, snapshot_id2: int) -> bool:
        """Check whether a change exists for this exact ordered snapshot pair."""
        result = self.session.execute(
            select(Change.id)
            .where(Change.snapshot_id1 == snapshot_id1, Change.snapshot_id2 == snapshot_id2)
            .limit(1)
        )
        return result.first() is not None

    def get_unclassified(self) -> list[Change]:
        """Get all changes without a classification."""
        result = self.session.execute(
            select(Change).where(Change.classification.is_(None)).order_by(Change.id.asc())
        )
        return list(result.scalars().all())

    def save(self, change: Change) -> Change:
        """Insert a change."""
        self.session.add(change)
        self.session.flush()
        return change

    def set_classification(self, change_id: int, classification: str, explanation: str) -> bool:
        """Write classification and explanation together onto a change."""
        result = self.session.execute(
            update(Change)
            .where(Change.id == change_id)
            .values(classification=classification, explanation=explanation)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0
