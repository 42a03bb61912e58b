"""
Durable storage for links.

The unique constraint on links.short_code is the only thing stopping two
concurrent creations from claiming the same code: the database rejects the
second writer and insert() reports that as DuplicateCodeError.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scanlink_app.exceptions import DuplicateCodeError, StoreError
from scanlink_app.models.link import Link

logger = logging.getLogger(__name__)

SHORT_CODE_CONSTRAINT = "uq_links_short_code"
UNIQUE_VIOLATION_SQLSTATE = "23505"


def _is_short_code_collision(error: IntegrityError) -> bool:
    orig = getattr(error, "orig", None)
    message = str(orig if orig is not None else error).lower()
    if SHORT_CODE_CONSTRAINT in message or "links.short_code" in message:
        return True
    # psycopg exposes the SQLSTATE; only trust it when the message names the column
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return sqlstate == UNIQUE_VIOLATION_SQLSTATE and "short_code" in message


class LinkRepository:
    """Link persistence over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, link: Link) -> Link:
        """
        Atomically insert a link.

        Raises:
            DuplicateCodeError: short_code is already taken
            StoreError: any other persistence failure
        """
        try:
            self.db.add(link)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _is_short_code_collision(e):
                logger.info("Short code collision on %s", link.short_code)
                raise DuplicateCodeError(link.short_code) from e
            logger.error("Integrity error inserting link %s: %s", link.id, e)
            raise StoreError("Failed to create link") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error inserting link %s: %s", link.id, e)
            raise StoreError("Failed to create link") from e

        self.db.refresh(link)
        return link

    def get_by_code(self, short_code: str) -> Optional[Link]:
        """Public point lookup: no owner filter, inactive links included."""
        try:
            return self.db.query(Link).filter(Link.short_code == short_code).first()
        except SQLAlchemyError as e:
            raise StoreError("Failed to look up short code") from e

    def get_for_owner(self, link_id: str, owner_id: str) -> Optional[Link]:
        try:
            return self.db.query(Link).filter(
                Link.id == link_id,
                Link.owner_id == owner_id
            ).first()
        except SQLAlchemyError as e:
            raise StoreError("Failed to load link") from e

    def list_for_owner(self, owner_id: str) -> List[Link]:
        try:
            return (
                self.db.query(Link)
                .filter(Link.owner_id == owner_id)
                .order_by(Link.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError("Failed to list links") from e

    def delete_for_owner(self, link_id: str, owner_id: str) -> bool:
        """Hard delete. Scan events of the link are kept."""
        try:
            deleted = self.db.query(Link).filter(
                Link.id == link_id,
                Link.owner_id == owner_id
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Failed to delete link") from e
        return bool(deleted)
