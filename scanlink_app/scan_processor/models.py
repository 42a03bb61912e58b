"""
Data model handed from the resolver to the background recorder.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class ScanRecord(BaseModel):
    """
    Everything known about one scan at resolution time.

    Built by the resolver and passed to the recorder, which turns it into a
    ScanEvent row. `scanned_at` is the moment of the scan, not of recording.
    """

    link_id: str = Field(..., description="Link that was scanned")
    owner_id: str = Field(..., description="Owner of the link at scan time")
    scanned_at: datetime = Field(..., description="UTC instant of the scan")

    # Request metadata
    client_ip: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Raw User-Agent header")
    referrer: Optional[str] = Field(None, description="HTTP Referer header")

    # Parsed metadata
    device_class: str = Field(..., description="Desktop, Mobile, Tablet or Bot")
    os_name: str = Field(..., description="Operating system family")
    browser_name: str = Field(..., description="Browser (or crawler) name")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "link_id": "5a8f4c1e-3b7d-4e52-9d0a-2f6c8b1e7a93",
                "owner_id": "user-42",
                "scanned_at": "2025-10-29T10:30:00Z",
                "client_ip": "192.168.1.1",
                "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148 Safari/604.1",
                "referrer": "https://twitter.com",
                "device_class": "Mobile",
                "os_name": "iOS",
                "browser_name": "Safari"
            }
        }
    )
