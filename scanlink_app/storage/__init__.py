"""
Storage for links and the scan event log.

The event log sits behind the ScanEventStore strategy so the aggregator
and recorder never depend on a concrete database.
"""

from .strategies import ScanEventStore, SQLScanEventStore, Dimension
from .link_repository import LinkRepository

__all__ = [
    "ScanEventStore",
    "SQLScanEventStore",
    "Dimension",
    "LinkRepository",
]
