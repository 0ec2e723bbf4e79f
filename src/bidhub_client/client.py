"""
MarketplaceClient — async HTTP client for the BidHub REST API.

Composes endpoint mixins for authentication, projects, and bids. All
cross-cutting concerns (HTTP transport, bearer headers, error mapping,
session expiry) live here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from bidhub_client.exceptions import (
    ApiError,
    AuthorizationError,
    NetworkError,
    ParseError,
    SessionExpiredError,
)
from bidhub_client.mixins import AuthMixin, BidsMixin, ProjectsMixin

if TYPE_CHECKING:
    from bidhub_client.config import ApiConfig
    from bidhub_client.session import SessionStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

GENERIC_ERROR_MESSAGE = "Something went wrong"


class MarketplaceClient(AuthMixin, ProjectsMixin, BidsMixin):
    """Client for the BidHub marketplace API.

    Reads the bearer token from the session store on every authenticated
    call. A 401 on an authenticated call clears the session store (the local
    equivalent of logging out) and raises ``SessionExpiredError``.

    Usage::

        client = MarketplaceClient(settings.api, session_store)
        auth = await client.login("ann@example.com", "secret")
        projects = await client.list_projects()
        await client.close()
    """

    def __init__(
        self,
        config: ApiConfig,
        session_store: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: API base URL and timeout.
            session_store: Source of the bearer token; required for
                           authenticated endpoints.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.config = config
        self.session_store = session_store
        self._http = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

    def _auth_header(self) -> dict[str, str]:
        """Return the bearer Authorization header for the current session.

        Raises:
            AuthorizationError: If there is no session.
        """
        session = self.session_store.load() if self.session_store is not None else None
        if session is None or not session.is_authenticated:
            msg = "Please login to continue"
            raise AuthorizationError(msg)
        return {"Authorization": f"Bearer {session.token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        authenticated: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Make an HTTP request with consistent error handling.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: Path relative to the configured base URL.
            authenticated: Attach the session's bearer token.
            **kwargs: Additional arguments passed to httpx.AsyncClient.request().

        Returns:
            Parsed JSON body, or the raw text when the body is not JSON.

        Raises:
            AuthorizationError: If ``authenticated`` and there is no session.
            SessionExpiredError: On 401 for an authenticated request.
            ApiError: On any other non-2xx status.
            NetworkError: If the request could not be completed.
        """
        if authenticated:
            headers = {**kwargs.pop("headers", {}), **self._auth_header()}
            kwargs["headers"] = headers

        try:
            response = await self._http.request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.warning(
                "BidHub API connection failed",
                extra={"error": str(exc), "method": method, "path": path},
            )
            msg = "Cannot connect to the BidHub API"
            raise NetworkError(msg, details={"error": str(exc)}) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "BidHub API transport error",
                extra={"error": str(exc), "method": method, "path": path},
            )
            msg = "Request to the BidHub API failed"
            raise NetworkError(msg, details={"error": str(exc)}) from exc

        body = self._decode_body(response)

        if response.is_success:
            return body

        message = GENERIC_ERROR_MESSAGE
        details: dict[str, Any] = {}
        if isinstance(body, dict):
            details = body
            server_message = body.get("message")
            if isinstance(server_message, str) and server_message:
                message = server_message

        logger.warning(
            "BidHub API returned an error status",
            extra={"status_code": response.status_code, "method": method, "path": path},
        )

        if response.status_code == 401 and authenticated:
            if self.session_store is not None:
                self.session_store.clear()
            raise SessionExpiredError(message, status_code=401, details=details)

        raise ApiError(message, status_code=response.status_code, details=details)

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _parse(model: type[ModelT], payload: Any, what: str) -> ModelT:
        """Validate ``payload`` into ``model`` or raise ParseError."""
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            logger.warning("Malformed %s payload", what, extra={"errors": exc.error_count()})
            msg = f"Unexpected {what} response from the BidHub API"
            raise ParseError(msg, details={"errors": exc.errors(include_url=False)}) from exc

    async def close(self) -> None:
        """Close the HTTP client. Call this when done using the client."""
        await self._http.aclose()

    async def __aenter__(self) -> MarketplaceClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"MarketplaceClient(base_url={self.config.base_url!r})"
