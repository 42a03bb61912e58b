from sqlalchemy import Column, String, DateTime, Boolean, JSON, Text, UniqueConstraint
from sqlalchemy.sql import func
from scanlink_app.database.connection import Base

DYNAMIC_KIND = "dynamic"


class Link(Base):
    """
    A short link (the payload behind a QR code).

    Dynamic links redirect through /r/{short_code} and have their scans
    recorded; every other kind is static and its destination is the public
    content itself.
    """
    __tablename__ = "links"
    __table_args__ = (
        UniqueConstraint("short_code", name="uq_links_short_code"),
    )

    id = Column(String(36), primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    # Weak reference: no foreign key, projects live outside this service
    project_id = Column(String, nullable=True)
    name = Column(String, nullable=False, default="My QR Code")
    kind = Column(String(32), nullable=False)
    # Immutable once assigned, never reused
    short_code = Column(String(16), nullable=False)
    destination = Column(Text, nullable=False)
    # Owned by the renderer, passed through untouched
    style_config = Column(JSON, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_dynamic(self) -> bool:
        return self.kind == DYNAMIC_KIND
