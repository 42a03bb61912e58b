"""
Scan event storage using Strategy Pattern.

The event log is append-only: the recorder appends, the aggregator reads.
All queries are scoped to an owner, optionally to one link, and to a
half-open time range [start, end).
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import func, literal_column
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from scanlink_app.exceptions import RecordingError, StoreError
from scanlink_app.models.scan_event import ScanEvent
from scanlink_app.schemas.analytics import BreakdownEntry, TimePoint, Totals

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown"


class Dimension(Enum):
    """Dimensions a summary can be broken down by"""
    COUNTRY = "country"
    DEVICE_CLASS = "device_class"
    BROWSER = "browser_name"


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ScanEventStore(ABC):
    """
    Abstract base class for scan event storage.

    append() must be safe to call from many threads at once and must never
    leave a partially written event behind.
    """

    @abstractmethod
    def append(self, event: ScanEvent) -> ScanEvent:
        """
        Append one event to the log.

        Raises:
            RecordingError: the event could not be written
        """
        pass

    @abstractmethod
    def totals(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime
    ) -> Totals:
        """Scan count and distinct client IP count"""
        pass

    @abstractmethod
    def breakdown(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime,
        dimension: Dimension,
        limit: int = 5
    ) -> List[BreakdownEntry]:
        """Top values of a dimension, count descending; empty values count as "Unknown" """
        pass

    @abstractmethod
    def time_series(
        self,
        owner_id: str,
        link_id: Optional[str],
        start: datetime,
        end: datetime
    ) -> List[TimePoint]:
        """Scans per calendar day (UTC), ascending, days without scans omitted"""
        pass


class SQLScanEventStore(ScanEventStore):
    """
    Relational implementation over SQLAlchemy.

    Every call opens its own session from the factory, so the store can be
    shared between request handlers and background recording threads.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _scoped(self, query, owner_id: str, link_id: Optional[str], start: datetime, end: datetime):
        query = query.filter(
            ScanEvent.owner_id == owner_id,
            ScanEvent.occurred_at >= to_utc(start),
            ScanEvent.occurred_at < to_utc(end),
        )
        if link_id:
            query = query.filter(ScanEvent.link_id == link_id)
        return query

    def append(self, event: ScanEvent) -> ScanEvent:
        # Keep the written event readable after the session closes
        db: Session = self.session_factory(expire_on_commit=False)
        try:
            db.add(event)
            db.commit()
            return event
        except SQLAlchemyError as e:
            db.rollback()
            raise RecordingError(f"Failed to append scan event {event.event_id}") from e
        finally:
            db.close()

    def totals(self, owner_id, link_id, start, end) -> Totals:
        db: Session = self.session_factory()
        try:
            query = db.query(
                func.count(ScanEvent.event_id),
                func.count(func.distinct(ScanEvent.client_ip)),
            )
            scans, unique_clients = self._scoped(query, owner_id, link_id, start, end).one()
            return Totals(scan_count=scans or 0, unique_clients=unique_clients or 0)
        except SQLAlchemyError as e:
            raise StoreError("Failed to count scans") from e
        finally:
            db.close()

    def breakdown(self, owner_id, link_id, start, end, dimension, limit=5) -> List[BreakdownEntry]:
        column = getattr(ScanEvent, dimension.value)
        # Literal constants keep SELECT and GROUP BY textually identical
        value = func.coalesce(
            func.nullif(column, literal_column("''")),
            literal_column(f"'{UNKNOWN_LABEL}'"),
        )
        count = func.count(ScanEvent.event_id)

        db: Session = self.session_factory()
        try:
            query = db.query(value, count)
            rows = (
                self._scoped(query, owner_id, link_id, start, end)
                .group_by(value)
                .order_by(count.desc(), value)
                .limit(limit)
                .all()
            )
            return [BreakdownEntry(value=row[0], count=row[1]) for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to break down scans by {dimension.name.lower()}") from e
        finally:
            db.close()

    def time_series(self, owner_id, link_id, start, end) -> List[TimePoint]:
        day = func.date(ScanEvent.occurred_at)

        db: Session = self.session_factory()
        try:
            query = db.query(day, func.count(ScanEvent.event_id))
            rows = (
                self._scoped(query, owner_id, link_id, start, end)
                .group_by(day)
                .order_by(day)
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError("Failed to build scan time series") from e
        finally:
            db.close()

        # SQLite hands back 'YYYY-MM-DD' strings, PostgreSQL real dates
        return [
            TimePoint(
                day=row[0] if isinstance(row[0], date) else date.fromisoformat(str(row[0])),
                count=row[1],
            )
            for row in rows
        ]
