"""DomSnapshot model for captured page content."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from changewatch.database import Base


class DomSnapshot(Base):
    """One capture of a page, written only by the external scraper.

    ``content`` is either a JSON object with a ``textContent`` field or
    an opaque string treated as raw text. ``url`` references a Source by
    value, not by foreign key.
    """

    __tablename__ = "dom_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), index=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
