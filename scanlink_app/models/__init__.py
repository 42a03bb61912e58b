"""
Database models.

Links are the transactional data; scan events are the append-only
analytics log read by the aggregator.
"""

from .link import Link, DYNAMIC_KIND
from .scan_event import ScanEvent

__all__ = ["Link", "ScanEvent", "DYNAMIC_KIND"]
