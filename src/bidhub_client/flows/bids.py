"""
Bid Lifecycle Controller.

Three independent flows:

- ``BidSubmissionFlow`` (seller): IDLE -> SUBMITTING -> SUCCESS | FAILED
- ``BidSelector`` (buyer): UNCONFIRMED -> CONFIRMED -> SELECTING -> SUCCESS,
  a failure drops back to UNCONFIRMED so the next click only re-arms
- ``CompletionPanels`` (seller): per bid, HIDDEN -> PANEL_OPEN ->
  FILE_SELECTED -> SUBMITTING -> SUCCESS | FAILED (panel and file kept)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from bidhub_client.exceptions import AuthorizationError, ClientError, ValidationError
from bidhub_client.schemas import Bid, BidStatus, Deliverable, Project, ProjectStatus

if TYPE_CHECKING:
    from bidhub_client.client import MarketplaceClient
    from bidhub_client.notices import NoticeBoard
    from bidhub_client.session import SessionStore

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class BidForm:
    amount: str = ""
    estimated_time: str = ""
    message: str = ""

    def validated_amount(self) -> float:
        """Parse the amount field; it must be a positive, finite number."""
        try:
            amount = float(self.amount)
        except (TypeError, ValueError):
            msg = "Bid amount must be a number"
            raise ValidationError(msg, details={"field": "amount"}) from None
        if not math.isfinite(amount) or amount <= 0:
            msg = "Bid amount must be greater than zero"
            raise ValidationError(msg, details={"field": "amount"})
        return amount

    def validate(self) -> float:
        missing = [
            name
            for name, value in (
                ("amount", self.amount),
                ("estimated_time", self.estimated_time),
                ("message", self.message),
            )
            if not str(value).strip()
        ]
        if missing:
            msg = "Please fill in all required fields"
            raise ValidationError(msg, details={"missing": missing})
        return self.validated_amount()


class BidSubmissionFlow:
    """Seller's bid form for one project."""

    def __init__(
        self,
        client: MarketplaceClient,
        session_store: SessionStore,
        notices: NoticeBoard,
        project_id: str,
        on_submitted: Callable[[Bid], None] | None = None,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._notices = notices
        self.project_id = project_id
        self._on_submitted = on_submitted
        self.form = BidForm()
        self.state = SubmissionState.IDLE
        self.last_error: ClientError | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is SubmissionState.SUBMITTING

    async def submit(self) -> Bid | None:
        """Submit the current form; returns the created bid or None on failure."""
        if self.is_loading:
            return None

        if not self._session_store.load().is_authenticated:
            return self._fail(AuthorizationError("Please login to submit a bid"))

        try:
            amount = self.form.validate()
        except ValidationError as exc:
            return self._fail(exc)

        self.state = SubmissionState.SUBMITTING
        self.last_error = None
        try:
            bid = await self._client.submit_bid(
                project_id=self.project_id,
                amount=amount,
                estimated_time=self.form.estimated_time.strip(),
                message=self.form.message.strip(),
            )
        except ClientError as exc:
            return self._fail(exc)

        self.state = SubmissionState.SUCCESS
        self.form = BidForm()
        self._notices.success("Bid submitted successfully!")
        logger.info("Bid submitted", extra={"project_id": self.project_id, "bid_id": bid.id})
        if self._on_submitted is not None:
            self._on_submitted(bid)
        return bid

    def _fail(self, exc: ClientError) -> None:
        self.state = SubmissionState.FAILED
        self.last_error = exc
        if isinstance(exc, ValidationError):
            self._notices.warning(exc.message)
        else:
            self._notices.error(exc.message or "Failed to submit bid")


class SelectionState(str, Enum):
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    SELECTING = "selecting"
    SUCCESS = "success"


_SELECTION_LABELS: dict[SelectionState, str] = {
    SelectionState.UNCONFIRMED: "Select This Bid",
    SelectionState.CONFIRMED: "Confirm Selection",
    SelectionState.SELECTING: "Processing...",
    SelectionState.SUCCESS: "Selected",
}


class BidSelector:
    """Two-click confirmation button for awarding a project to one bid."""

    def __init__(
        self,
        bid_id: str,
        on_select: Callable[[str], Awaitable[Any]],
        notices: NoticeBoard,
    ) -> None:
        self.bid_id = bid_id
        self._on_select = on_select
        self._notices = notices
        self.state = SelectionState.UNCONFIRMED
        self.last_error: ClientError | None = None

    @property
    def label(self) -> str:
        return _SELECTION_LABELS[self.state]

    @property
    def disabled(self) -> bool:
        return self.state in (SelectionState.SELECTING, SelectionState.SUCCESS)

    async def activate(self) -> bool:
        """Handle one click. Returns True only when the selection went through."""
        if self.disabled:
            return False
        if self.state is SelectionState.UNCONFIRMED:
            self.state = SelectionState.CONFIRMED
            return False

        self.state = SelectionState.SELECTING
        try:
            await self._on_select(self.bid_id)
        except ClientError as exc:
            self.state = SelectionState.UNCONFIRMED
            self.last_error = exc
            self._notices.error(exc.message or "Failed to select bid")
            return False

        self.state = SelectionState.SUCCESS
        self.last_error = None
        return True

    def disarm(self) -> None:
        """Drop a pending confirmation (e.g. the user clicked elsewhere)."""
        if self.state is SelectionState.CONFIRMED:
            self.state = SelectionState.UNCONFIRMED


class BuyerProjectView:
    """Buyer's view of one project and the bids placed on it."""

    def __init__(self, client: MarketplaceClient, notices: NoticeBoard, project: Project) -> None:
        self._client = client
        self._notices = notices
        self.project = project
        self._selectors: dict[str, BidSelector] = {}
        self._selecting = False

    @property
    def bids(self) -> list[Bid]:
        return list(self.project.bids)

    @property
    def selection_open(self) -> bool:
        return self.project.status is ProjectStatus.PENDING and self.project.selected_bid_id is None

    def selector(self, bid_id: str) -> BidSelector | None:
        """Return the select button for ``bid_id``, or None when selection is closed."""
        if not self.selection_open or not any(bid.id == bid_id for bid in self.project.bids):
            return None
        if bid_id not in self._selectors:
            self._selectors[bid_id] = BidSelector(bid_id, self._select, self._notices)
        return self._selectors[bid_id]

    async def _select(self, bid_id: str) -> None:
        if not self.selection_open:
            msg = "A bid has already been selected for this project"
            raise ValidationError(msg, details={"project_id": self.project.id})
        if self._selecting:
            msg = "Another bid selection is in progress"
            raise ValidationError(msg, details={"project_id": self.project.id})
        self._selecting = True
        try:
            updated = await self._client.select_bid(self.project.id, bid_id)
        finally:
            self._selecting = False
        chosen = next(bid for bid in self.project.bids if bid.id == bid_id)
        bids = [
            bid.model_copy(update={"bid_status": BidStatus.SELECTED}) if bid.id == bid_id else bid
            for bid in self.project.bids
        ]
        self.project = self.project.model_copy(
            update={
                "status": ProjectStatus.IN_PROGRESS,
                "selected_bid_id": bid_id,
                "seller_id": updated.seller_id or chosen.seller_id,
                "bids": bids,
            }
        )
        for other_id, selector in self._selectors.items():
            if other_id != bid_id:
                selector.disarm()
        self._notices.success("Bid selected")
        logger.info("Bid selected", extra={"project_id": self.project.id, "bid_id": bid_id})


class CompletionState(str, Enum):
    HIDDEN = "hidden"
    PANEL_OPEN = "panel_open"
    FILE_SELECTED = "file_selected"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class BidCompletionAttempt:
    bid_id: str
    project_id: str
    selected_file: Deliverable | None = None
    submitting: bool = False
    state: CompletionState = CompletionState.PANEL_OPEN
    last_error: ClientError | None = field(default=None, repr=False)

    @property
    def can_submit(self) -> bool:
        return self.selected_file is not None and not self.submitting


class CompletionPanels:
    """Seller's "mark complete" panels, one independent attempt per bid."""

    def __init__(
        self,
        client: MarketplaceClient,
        notices: NoticeBoard,
        bids: Iterable[Bid],
        projects: Iterable[Project],
    ) -> None:
        self._client = client
        self._notices = notices
        self.bids: dict[str, Bid] = {bid.id: bid for bid in bids}
        self.projects: dict[str, Project] = {project.id: project for project in projects}
        self._attempts: dict[str, BidCompletionAttempt] = {}

    def is_offered(self, bid_id: str) -> bool:
        """Completion is offered for selected bids whose project is not completed yet."""
        bid = self.bids.get(bid_id)
        if bid is None or bid.bid_status is not BidStatus.SELECTED:
            return False
        project = self.projects.get(bid.project_id)
        return project is None or project.status is not ProjectStatus.COMPLETED

    def attempt(self, bid_id: str) -> BidCompletionAttempt | None:
        return self._attempts.get(bid_id)

    def state(self, bid_id: str) -> CompletionState:
        attempt = self._attempts.get(bid_id)
        return attempt.state if attempt is not None else CompletionState.HIDDEN

    def open_panel(self, bid_id: str) -> BidCompletionAttempt | None:
        if bid_id in self._attempts:
            return self._attempts[bid_id]
        if not self.is_offered(bid_id):
            self._notices.warning("This bid cannot be marked complete")
            return None
        attempt = BidCompletionAttempt(bid_id=bid_id, project_id=self.bids[bid_id].project_id)
        self._attempts[bid_id] = attempt
        return attempt

    def close_panel(self, bid_id: str) -> None:
        self._attempts.pop(bid_id, None)

    def attach_file(
        self,
        bid_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> BidCompletionAttempt:
        attempt = self._attempts.get(bid_id)
        if attempt is None:
            msg = "Open the completion panel before attaching a file"
            raise ValidationError(msg, details={"bid_id": bid_id})
        if attempt.submitting:
            msg = "Cannot change the file while submitting"
            raise ValidationError(msg, details={"bid_id": bid_id})
        attempt.selected_file = Deliverable(
            filename=filename, content=content, content_type=content_type
        )
        attempt.state = CompletionState.FILE_SELECTED
        return attempt

    def can_submit(self, bid_id: str) -> bool:
        attempt = self._attempts.get(bid_id)
        return attempt is not None and attempt.can_submit

    async def submit(self, bid_id: str) -> Project | None:
        """Upload the deliverable and mark the bid's project COMPLETED."""
        attempt = self._attempts.get(bid_id)
        if attempt is None or not attempt.can_submit:
            if attempt is not None and attempt.submitting:
                return None
            self._notices.warning("Please attach a file before submitting")
            return None

        document = attempt.selected_file
        assert document is not None
        attempt.submitting = True
        attempt.state = CompletionState.SUBMITTING
        try:
            project = await self._client.complete_project(
                attempt.project_id, bid_id, document=document
            )
        except ClientError as exc:
            attempt.submitting = False
            attempt.state = CompletionState.FAILED
            attempt.last_error = exc
            self._notices.error(exc.message or "Failed to mark project complete")
            return None

        self.bids[bid_id] = self.bids[bid_id].model_copy(
            update={"bid_status": BidStatus.COMPLETED}
        )
        existing = self.projects.get(attempt.project_id)
        base = existing if existing is not None else project
        self.projects[attempt.project_id] = base.model_copy(
            update={"status": ProjectStatus.COMPLETED}
        )
        attempt.submitting = False
        attempt.state = CompletionState.SUCCESS
        if self._attempts.get(bid_id) is attempt:
            del self._attempts[bid_id]
        self._notices.success("Project marked as completed")
        logger.info(
            "Project completed",
            extra={"project_id": attempt.project_id, "bid_id": bid_id},
        )
        return self.projects[attempt.project_id]
