"""Projects mixin — listing, creation, status changes, bid selection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from pydantic import BaseModel

from bidhub_client.exceptions import ParseError
from bidhub_client.schemas import Project, ProjectStatus

if TYPE_CHECKING:
    from bidhub_client.schemas import Deliverable

ModelT = TypeVar("ModelT", bound=BaseModel)


class _ProjectsClient(Protocol):
    async def _request(
        self, method: str, path: str, *, authenticated: bool = False, **kwargs: Any
    ) -> Any: ...

    def _parse(self, model: type[ModelT], payload: Any, what: str) -> ModelT: ...

    async def update_project_status(
        self,
        project_id: str,
        status: ProjectStatus,
        bid_id: str,
        document: Deliverable | None = None,
    ) -> Project: ...


class ProjectsMixin:
    """Methods for the /api/projects endpoints."""

    async def list_projects(self: _ProjectsClient) -> list[Project]:
        """List all projects (public, no token needed)."""
        payload = await self._request("GET", "/api/projects")
        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            payload = payload["data"]
        if not isinstance(payload, list):
            msg = "Unexpected project list response from the BidHub API"
            raise ParseError(msg)
        return [self._parse(Project, item, "project") for item in payload]

    async def create_project(
        self: _ProjectsClient,
        title: str,
        description: str,
        budget_min: float,
        budget_max: float,
        deadline: str,
    ) -> Project:
        """Post a new project as the logged-in buyer."""
        payload = await self._request(
            "POST",
            "/api/projects",
            authenticated=True,
            json={
                "title": title,
                "description": description,
                "budgetMin": budget_min,
                "budgetMax": budget_max,
                "deadline": deadline,
            },
        )
        return self._parse(Project, payload, "project")

    async def update_project_status(
        self: _ProjectsClient,
        project_id: str,
        status: ProjectStatus,
        bid_id: str,
        document: Deliverable | None = None,
    ) -> Project:
        """Change a project's status via PUT /api/projects/{id}/status.

        Sent as multipart form data with ``status`` and ``bidId`` fields and,
        when given, the deliverable as the ``document`` file part.
        """
        files: dict[str, tuple[str, bytes, str]] = {}
        if document is not None:
            files["document"] = (document.filename, document.content, document.content_type)
        payload = await self._request(
            "PUT",
            f"/api/projects/{project_id}/status",
            authenticated=True,
            data={"status": status.value, "bidId": bid_id},
            files=files or None,
        )
        return self._parse(Project, payload, "project")

    async def select_bid(self: _ProjectsClient, project_id: str, bid_id: str) -> Project:
        """Award a project to a bid; the project moves to IN_PROGRESS."""
        return await self.update_project_status(project_id, ProjectStatus.IN_PROGRESS, bid_id)

    async def complete_project(
        self: _ProjectsClient,
        project_id: str,
        bid_id: str,
        document: Deliverable,
    ) -> Project:
        """Mark a project COMPLETED, uploading the deliverable."""
        return await self.update_project_status(
            project_id, ProjectStatus.COMPLETED, bid_id, document=document
        )
