"""SQLAlchemy models."""

from changewatch.models.change import Change, ChangeClassification
from changewatch.models.dom_snapshot import DomSnapshot
from changewatch.models.source import Source

__all__ = [
    "Source",
    "DomSnapshot",
    "Change",
    "ChangeClassification",
]
