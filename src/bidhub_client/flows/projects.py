"""Buyer's project creation flow."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from bidhub_client.exceptions import AuthorizationError, ClientError, ValidationError

if TYPE_CHECKING:
    from bidhub_client.client import MarketplaceClient
    from bidhub_client.notices import NoticeBoard
    from bidhub_client.schemas import Project
    from bidhub_client.session import SessionStore

logger = logging.getLogger(__name__)

BUYER_DASHBOARD_PATH = "/dashboard/buyer"


class CreationState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


def _parse_budget(value: str, field_name: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        msg = "Budget must be a number"
        raise ValidationError(msg, details={"field": field_name}) from None
    if not math.isfinite(amount) or amount <= 0:
        msg = "Budget must be greater than zero"
        raise ValidationError(msg, details={"field": field_name})
    return amount


@dataclass
class ProjectForm:
    title: str = ""
    description: str = ""
    budget_min: str = ""
    budget_max: str = ""
    deadline: str = ""

    def validate(self) -> tuple[float, float]:
        """Check required fields and the budget range; returns (min, max)."""
        missing = [
            name
            for name in ("title", "description", "budget_min", "budget_max", "deadline")
            if not str(getattr(self, name)).strip()
        ]
        if missing:
            msg = "Please fill in all required fields"
            raise ValidationError(msg, details={"missing": missing})
        budget_min = _parse_budget(self.budget_min, "budget_min")
        budget_max = _parse_budget(self.budget_max, "budget_max")
        if budget_min > budget_max:
            msg = "Minimum budget cannot exceed maximum budget"
            raise ValidationError(msg, details={"field": "budget_min"})
        return budget_min, budget_max


class ProjectCreationFlow:
    def __init__(
        self,
        client: MarketplaceClient,
        session_store: SessionStore,
        notices: NoticeBoard,
        on_navigate: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._notices = notices
        self._on_navigate = on_navigate
        self.form = ProjectForm()
        self.state = CreationState.IDLE
        self.last_error: ClientError | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is CreationState.SUBMITTING

    async def submit(self) -> Project | None:
        if self.is_loading:
            return None
        if not self._session_store.load().is_authenticated:
            return self._fail(AuthorizationError("Please Login"))
        try:
            budget_min, budget_max = self.form.validate()
        except ValidationError as exc:
            return self._fail(exc)

        self.state = CreationState.SUBMITTING
        self.last_error = None
        try:
            project = await self._client.create_project(
                title=self.form.title.strip(),
                description=self.form.description.strip(),
                budget_min=budget_min,
                budget_max=budget_max,
                deadline=self.form.deadline.strip(),
            )
        except ClientError as exc:
            return self._fail(exc)

        self.state = CreationState.SUCCESS
        self.form = ProjectForm()
        self._notices.success("Project created successfully!")
        logger.info("Project created", extra={"project_id": project.id})
        if self._on_navigate is not None:
            self._on_navigate(BUYER_DASHBOARD_PATH)
        return project

    def _fail(self, exc: ClientError) -> None:
        self.state = CreationState.FAILED
        self.last_error = exc
        if isinstance(exc, ValidationError):
            self._notices.warning(exc.message)
        else:
            self._notices.error(exc.message or "Failed to create project")
