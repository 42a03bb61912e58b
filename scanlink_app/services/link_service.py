import logging
import uuid
from typing import List, Optional

from scanlink_app.exceptions import DuplicateCodeError, NotFoundError, RetriesExhaustedError
from scanlink_app.models.link import Link, DYNAMIC_KIND
from scanlink_app.schemas.link import StyleConfig, validate_redirect_target
from scanlink_app.services.short_code_strategies import ShortCodeStrategy
from scanlink_app.storage.link_repository import LinkRepository

logger = logging.getLogger(__name__)

URL_KIND = "url"
DEFAULT_LINK_NAME = "My QR Code"


def normalize_kind(kind: str) -> str:
    """A "url" link is tracked, so it is stored as dynamic; other kinds are kept as-is."""
    kind = kind.strip().lower()
    return DYNAMIC_KIND if kind == URL_KIND else kind


class LinkService:
    """
    Link creation and lookup.

    Dependencies are injected (repository, code strategy, settings values),
    so tests can drive collisions with a fake repository or a scripted
    code strategy.
    """

    def __init__(
        self,
        repository: LinkRepository,
        code_strategy: ShortCodeStrategy,
        base_url: str,
        code_length: int = 6,
        max_attempts: int = 3
    ):
        self.repository = repository
        self.code_strategy = code_strategy
        self.base_url = base_url.rstrip("/")
        self.code_length = code_length
        self.max_attempts = max_attempts

    async def create_link(
        self,
        owner_id: str,
        kind: str,
        destination: str,
        style: Optional[StyleConfig] = None,
        name: Optional[str] = None,
        project_id: Optional[str] = None
    ) -> Link:
        """
        Create a link with a freshly generated short code.

        Process:
        1. Generate a candidate code
        2. Try an atomic insert (the unique constraint rejects taken codes)
        3. On a collision, regenerate and retry, up to max_attempts in total

        Only collisions are retried. A StoreError from the repository aborts
        straight away.

        Raises:
            ValueError: empty destination, or a dynamic destination that is not an http(s) URL
            RetriesExhaustedError: every attempt collided
            StoreError: any other persistence failure
        """
        if not destination or not destination.strip():
            raise ValueError("destination required")

        stored_kind = normalize_kind(kind)
        if stored_kind == DYNAMIC_KIND:
            validate_redirect_target(destination)
        style_blob = style.model_dump(by_alias=True, exclude_none=True) if style else None

        for attempt in range(1, self.max_attempts + 1):
            link = Link(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                project_id=project_id,
                name=name or DEFAULT_LINK_NAME,
                kind=stored_kind,
                short_code=self.code_strategy.generate(self.code_length),
                destination=destination,
                style_config=style_blob,
                active=True,
            )
            try:
                created = self.repository.insert(link)
            except DuplicateCodeError:
                logger.info(
                    "Short code collision on attempt %d/%d", attempt, self.max_attempts
                )
                continue

            logger.info(
                "Created %s link %s with code %s for owner %s",
                created.kind, created.id, created.short_code, owner_id
            )
            return created

        logger.error(
            "Short code retries exhausted for owner %s after %d attempts",
            owner_id, self.max_attempts
        )
        raise RetriesExhaustedError(self.max_attempts)

    async def resolve_by_code(self, short_code: str) -> Link:
        """
        Public lookup used on every scan.

        Raises:
            NotFoundError: unknown code
        """
        link = self.repository.get_by_code(short_code)
        if link is None:
            raise NotFoundError(short_code)
        return link

    async def get_link(self, link_id: str, owner_id: str) -> Link:
        link = self.repository.get_for_owner(link_id, owner_id)
        if link is None:
            raise NotFoundError(link_id)
        return link

    async def list_links(self, owner_id: str) -> List[Link]:
        return self.repository.list_for_owner(owner_id)

    async def delete_link(self, link_id: str, owner_id: str) -> None:
        """Delete a link. Its recorded scans stay in the event log."""
        if not self.repository.delete_for_owner(link_id, owner_id):
            raise NotFoundError(link_id)

    def content_for(self, link: Link) -> str:
        """The string a renderer encodes for this link."""
        if link.is_dynamic:
            return f"{self.base_url}/r/{link.short_code}"
        return link.destination
