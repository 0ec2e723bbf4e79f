"""Pydantic models for sessions and BidHub API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Keys that may carry credential material and must never be persisted.
CREDENTIAL_FIELDS: frozenset[str] = frozenset(
    {"password", "passwordHash", "password_hash", "otp", "otpHash", "otp_hash"}
)


class Role(str, Enum):
    """Marketplace role a user commits to at registration."""

    BUYER = "BUYER"
    SELLER = "SELLER"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Parse a role case-insensitively ("buyer", "BUYER", Role.BUYER)."""
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            msg = f"Unknown role: {value!r}"
            raise ValueError(msg) from None


class ProjectStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class BidStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    SELECTED = "SELECTED"
    COMPLETED = "COMPLETED"


class _ApiModel(BaseModel):
    """Base for API payloads: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


def strip_credentials(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``payload`` without credential-bearing keys."""
    return {key: value for key, value in payload.items() if key not in CREDENTIAL_FIELDS}


class UserSummary(_ApiModel):
    """Read-only projection of the authenticated user. Never holds credentials."""

    id: str
    name: str
    email: str
    role: Role
    created_at: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, value: Any) -> Role:
        return Role.parse(value)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> UserSummary:
        """Build a summary from an API user object, dropping credential fields."""
        return cls.model_validate(strip_credentials(payload))

    def to_storage(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) keys for persisted storage."""
        return self.model_dump(mode="json", by_alias=True)


class Session(BaseModel):
    """Client-side authentication state: token, role, and profile."""

    model_config = ConfigDict(frozen=True)

    token: str | None = None
    role: Role | None = None
    profile: UserSummary | None = None

    @classmethod
    def absent(cls) -> Session:
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.profile is not None


class Bid(_ApiModel):
    id: str
    project_id: str
    amount: float
    estimated_time: str = ""
    message: str = ""
    created_at: str | None = None
    seller_name: str | None = None
    seller_id: str | None = None
    bid_status: BidStatus = BidStatus.SUBMITTED

    @field_validator("bid_status", mode="before")
    @classmethod
    def _upper_status(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class Project(_ApiModel):
    id: str
    title: str
    description: str = ""
    budget_min: float
    budget_max: float
    deadline: str
    status: ProjectStatus = ProjectStatus.PENDING
    created_at: str | None = None
    updated_at: str | None = None
    buyer_id: str | None = None
    seller_id: str | None = None
    selected_bid_id: str | None = None
    bids: list[Bid] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        # Older payloads use display labels such as "In Progress".
        if isinstance(value, str):
            return value.strip().upper().replace(" ", "_")
        return value


class UserDetails(UserSummary):
    """Full profile returned by GET /api/auth/details."""

    projects_created: list[Project] = Field(default_factory=list)
    projects_taken: list[Project] = Field(default_factory=list)
    bids: list[Bid] = Field(default_factory=list)


class AuthResponse(BaseModel):
    """Successful login / OTP verification response."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    token: str = Field(min_length=1)
    user: UserSummary

    @field_validator("user", mode="before")
    @classmethod
    def _strip_user_credentials(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return strip_credentials(value)
        return value


class Deliverable(BaseModel):
    """A file chosen for upload with a completion request."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(min_length=1)
    content: bytes
    content_type: str = "application/octet-stream"
