"""Bids mixin — bid submission."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from bidhub_client.schemas import Bid

ModelT = TypeVar("ModelT", bound=BaseModel)


class _BidsClient(Protocol):
    async def _request(
        self, method: str, path: str, *, authenticated: bool = False, **kwargs: Any
    ) -> Any: ...

    def _parse(self, model: type[ModelT], payload: Any, what: str) -> ModelT: ...


class BidsMixin:
    """Methods for the /api/bids endpoint."""

    async def submit_bid(
        self: _BidsClient,
        project_id: str,
        amount: float,
        estimated_time: str,
        message: str,
    ) -> Bid:
        """Submit a bid on a project as the logged-in seller."""
        payload = await self._request(
            "POST",
            "/api/bids",
            authenticated=True,
            json={
                "projectId": project_id,
                "amount": amount,
                "estimatedTime": estimated_time,
                "message": message,
            },
        )
        return self._parse(Bid, payload, "bid")
