from sqlalchemy import Column, String, DateTime, Text, Index
from scanlink_app.database.connection import Base


class ScanEvent(Base):
    """
    One recorded scan of a dynamic link.

    Append-only: rows are never updated, and deleting a link leaves its
    events in place (link_id has no foreign key).
    owner_id is copied from the link at record time so dashboard queries
    never join against links.
    """
    __tablename__ = "scan_events"
    __table_args__ = (
        Index("ix_scan_events_owner_occurred", "owner_id", "occurred_at"),
        Index("ix_scan_events_link_occurred", "link_id", "occurred_at"),
    )

    event_id = Column(String(36), primary_key=True)
    link_id = Column(String(36), nullable=False)
    owner_id = Column(String, nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)

    client_ip = Column(String(64), nullable=True)
    # Geo enrichment is not implemented; both are always "Unknown"
    country = Column(String(64), nullable=True)
    city = Column(String(128), nullable=True)

    user_agent_raw = Column(Text, nullable=True)
    device_class = Column(String(16), nullable=True)
    os_name = Column(String(64), nullable=True)
    browser_name = Column(String(64), nullable=True)
    referrer = Column(Text, nullable=True)
