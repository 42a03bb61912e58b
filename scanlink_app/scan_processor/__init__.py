"""
Background scan recording: the resolver dispatches, the recorder writes.
"""

from .models import ScanRecord
from .dispatcher import RecordingDispatcher
from .recorder import ScanRecorder

__all__ = [
    "ScanRecord",
    "RecordingDispatcher",
    "ScanRecorder",
]
