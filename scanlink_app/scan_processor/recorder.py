import logging
import uuid

from scanlink_app.models.scan_event import ScanEvent
from scanlink_app.scan_processor.models import ScanRecord
from scanlink_app.storage.strategies import ScanEventStore, to_utc

logger = logging.getLogger(__name__)

# Geo-IP lookup is not implemented
GEO_UNKNOWN = "Unknown"


class ScanRecorder:
    """
    Turns scan records into rows of the append-only event log.

    Called from dispatcher worker threads; holds no mutable state of its own,
    so any number of recordings can run at once.
    """

    def __init__(self, store: ScanEventStore):
        self.store = store

    def record(self, scan: ScanRecord) -> ScanEvent:
        """
        Append one scan event.

        Raises:
            RecordingError: the store rejected the write
        """
        event_id = str(uuid.uuid4())
        event = ScanEvent(
            event_id=event_id,
            link_id=scan.link_id,
            owner_id=scan.owner_id,
            occurred_at=to_utc(scan.scanned_at),
            client_ip=scan.client_ip,
            country=GEO_UNKNOWN,
            city=GEO_UNKNOWN,
            user_agent_raw=scan.user_agent,
            device_class=scan.device_class,
            os_name=scan.os_name,
            browser_name=scan.browser_name,
            referrer=scan.referrer,
        )
        self.store.append(event)
        logger.debug("Scan %s logged for link %s", event_id, scan.link_id)
        return event
