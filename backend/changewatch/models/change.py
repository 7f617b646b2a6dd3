"""Change model for detected transitions between two snapshots."""

import enum
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from changewatch.database import Base


class ChangeClassification(str, enum.Enum):
    """Closed vocabulary for change classification."""

    BREAKING = "breaking"
    SECURITY = "security"
    PERFORMANCE = "performance"
    NEW_FEATURE = "new_feature"
    MINOR_FIX = "minor_fix"
    OTHER = "other"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Change(Base):
    """A significant change between an older and a newer snapshot.

    Created with ``diff`` only; ``classification`` and ``explanation`` are
    written together, once, by the classifier.
    """

    __tablename__ = "changes"
    __table_args__ = (
        # Not unique: duplicate prevention is a read-before-insert check
        Index("ix_changes_snapshot_pair", "snapshot_id1", "snapshot_id2"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sources.id", ondelete="CASCADE"),
        index=True,
    )
    snapshot_id1: Mapped[int] = mapped_column(Integer, ForeignKey("dom_snapshots.id"))  # older
    snapshot_id2: Mapped[int] = mapped_column(Integer, ForeignKey("dom_snapshots.id"))  # newer

    # {"summary": "..."}
    diff: Mapped[dict[str, Any]] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))

    classification: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    @property
    def summary(self) -> str:
        """The diff summary, or an empty string when the diff is malformed."""
        if isinstance(self.diff, dict):
            summary = self.diff.get("summary")
            if isinstance(summary, str):
                return summary
        return ""
