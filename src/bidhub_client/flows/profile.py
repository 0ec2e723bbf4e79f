"""Profile / dashboard loader."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bidhub_client.exceptions import AuthorizationError, ClientError
from bidhub_client.schemas import BidStatus, ProjectStatus, UserDetails

if TYPE_CHECKING:
    from bidhub_client.client import MarketplaceClient
    from bidhub_client.notices import NoticeBoard
    from bidhub_client.session import SessionStore

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = frozenset({ProjectStatus.PENDING, ProjectStatus.IN_PROGRESS})


@dataclass(frozen=True)
class ProfileSummary:
    active_projects: int
    completed_projects: int
    bids_placed: int
    bids_selected: int

    @classmethod
    def from_details(cls, details: UserDetails) -> ProfileSummary:
        # Buyers own projectsCreated, sellers work on projectsTaken.
        projects = [*details.projects_created, *details.projects_taken]
        return cls(
            active_projects=sum(1 for p in projects if p.status in _ACTIVE_STATUSES),
            completed_projects=sum(1 for p in projects if p.status is ProjectStatus.COMPLETED),
            bids_placed=len(details.bids),
            bids_selected=sum(
                1
                for b in details.bids
                if b.bid_status in (BidStatus.SELECTED, BidStatus.COMPLETED)
            ),
        )


class ProfileLoader:
    """Fetches the logged-in user's details with loading and error state."""

    def __init__(
        self,
        client: MarketplaceClient,
        session_store: SessionStore,
        notices: NoticeBoard,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._notices = notices
        self.loading = False
        self.details: UserDetails | None = None
        self.summary: ProfileSummary | None = None
        self.error: ClientError | None = None

    async def load(self) -> UserDetails | None:
        if self.loading:
            return None
        if not self._session_store.load().is_authenticated:
            self.error = AuthorizationError("No authentication token found")
            self._notices.warning(self.error.message)
            return None

        self.loading = True
        self.error = None
        try:
            details = await self._client.fetch_details()
        except ClientError as exc:
            self.error = exc
            self._notices.error(exc.message or "Failed to load profile data")
            logger.info("Profile load failed", extra={"error_code": exc.error})
            return None
        finally:
            self.loading = False

        self.details = details
        self.summary = ProfileSummary.from_details(details)
        return details
