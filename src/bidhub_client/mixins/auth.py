"""Auth mixin — login, signup OTP, and profile details."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from bidhub_client.exceptions import ApiError
from bidhub_client.schemas import AuthResponse, Role, UserDetails

ModelT = TypeVar("ModelT", bound=BaseModel)


class _AuthClient(Protocol):
    async def _request(
        self, method: str, path: str, *, authenticated: bool = False, **kwargs: Any
    ) -> Any: ...

    def _parse(self, model: type[ModelT], payload: Any, what: str) -> ModelT: ...


class AuthMixin:
    """Methods for the /api/auth and signup OTP endpoints."""

    async def login(self: _AuthClient, email: str, password: str) -> AuthResponse:
        """Exchange credentials for a token and user summary.

        Calls POST /api/auth/login. Does not touch the session store; the
        caller decides whether to persist the result.
        """
        payload = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        return self._parse(AuthResponse, payload, "login")

    async def request_otp(
        self: _AuthClient,
        name: str,
        email: str,
        password: str,
        role: Role,
    ) -> str:
        """Ask the API to send a signup one-time password to ``email``.

        Returns:
            The server's confirmation message.
        """
        payload = await self._request(
            "POST",
            "/api/requestotp",
            json={"name": name, "email": email, "password": password, "role": role.value},
        )
        if isinstance(payload, dict):
            message = payload.get("message")
            return message if isinstance(message, str) else "OTP sent"
        if isinstance(payload, str) and payload:
            return payload
        return "OTP sent"

    async def verify_otp(self: _AuthClient, email: str, otp: str) -> AuthResponse:
        """Complete signup by verifying the one-time password."""
        payload = await self._request(
            "POST", "/api/verifyotp", json={"email": email, "otp": otp}
        )
        return self._parse(AuthResponse, payload, "OTP verification")

    async def fetch_details(self: _AuthClient) -> UserDetails:
        """Get the authenticated user's full profile.

        Calls GET /api/auth/details with the bearer token. The response
        envelope is ``{status, data}``; any status other than ``success`` is
        reported as an ApiError.
        """
        payload = await self._request("GET", "/api/auth/details", authenticated=True)
        if not isinstance(payload, dict) or payload.get("status") != "success":
            msg = "API returned error status"
            raise ApiError(msg, details=payload if isinstance(payload, dict) else {})
        return self._parse(UserDetails, payload.get("data"), "profile")
