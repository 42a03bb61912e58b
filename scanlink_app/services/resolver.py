import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from scanlink_app.exceptions import NotFoundError
from scanlink_app.scan_processor.dispatcher import RecordingDispatcher
from scanlink_app.scan_processor.models import ScanRecord
from scanlink_app.scan_processor.recorder import ScanRecorder
from scanlink_app.services.link_service import LinkService
from scanlink_app.services.user_agent import classify

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Resolver:
    """
    Turns a scanned short code into its destination.

    Flow:
    1. Look the code up (no owner filter, this is the public path)
    2. Reject unknown or inactive links
    3. Dynamic links: classify the user agent and hand the scan to the
       recording dispatcher without waiting for it
    4. Return the destination

    Nothing that happens to the recording (pool full, store down) can change
    what the caller gets back.
    """

    def __init__(
        self,
        link_service: LinkService,
        recorder: ScanRecorder,
        dispatcher: RecordingDispatcher,
        clock: Callable[[], datetime] = utc_now
    ):
        self.link_service = link_service
        self.recorder = recorder
        self.dispatcher = dispatcher
        self.clock = clock

    async def resolve(
        self,
        code: str,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None
    ) -> str:
        """
        Resolve a short code.

        Args:
            code: Short code from the path
            client_ip: Caller address (already proxy-resolved)
            user_agent: Raw User-Agent header
            referrer: Raw Referer header

        Returns:
            Destination to redirect to

        Raises:
            NotFoundError: unknown code, inactive link, or dynamic link without a destination
        """
        link = await self.link_service.resolve_by_code(code)
        if not link.active:
            raise NotFoundError(code)

        if not link.is_dynamic:
            # Static content is encoded directly, nothing to track
            return link.destination

        if not link.destination:
            raise NotFoundError(code)

        device = classify(user_agent)
        record = ScanRecord(
            link_id=link.id,
            owner_id=link.owner_id,
            scanned_at=self.clock(),
            client_ip=client_ip,
            user_agent=user_agent,
            referrer=referrer,
            device_class=device.device_class,
            os_name=device.os,
            browser_name=device.browser,
        )
        if not self.dispatcher.submit(self.recorder.record, record):
            logger.warning("Scan of %s not recorded", code)

        return link.destination
