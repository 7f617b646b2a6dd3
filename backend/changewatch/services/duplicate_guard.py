"""Read-before-insert check keeping one change per snapshot pair."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from changewatch.repositories import PostgresChangeRepository

logger = logging.getLogger(__name__)


class DuplicateGuard:
    """Check whether a change already exists for an ordered snapshot pair.

    Best effort, not race-free: there is no uniqueness constraint behind it.
    A failed lookup reports "does not exist", so a store hiccup may yield a
    duplicate row but never drops a legitimate one.
    """

    def __init__(self, session: Session):
        self.session = session
        self.changes = PostgresChangeRepository(session)

    def exists(self, snapshot_id1: int, snapshot_id2: int) -> bool:
        try:
            return self.changes.exists_for_pair(snapshot_id1, snapshot_id2)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error checking existing diff for {snapshot_id1}->{snapshot_id2}: {e}")
            return False
