"""Unit tests for payload models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from bidhub_client.schemas import (
    AuthResponse,
    Bid,
    BidStatus,
    Project,
    ProjectStatus,
    Role,
    Session,
    UserSummary,
    strip_credentials,
)


@pytest.mark.unit
class TestRole:
    @pytest.mark.parametrize("value", ["buyer", "BUYER", " Buyer ", Role.BUYER])
    def test_parse_is_case_insensitive(self, value: str | Role) -> None:
        assert Role.parse(value) is Role.BUYER

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown role"):
            Role.parse("admin")


@pytest.mark.unit
class TestUserSummary:
    def test_drops_credentials_and_coerces_id(self, buyer_payload: dict[str, Any]) -> None:
        user = UserSummary.from_payload({**buyer_payload, "id": 7, "role": "buyer"})

        assert user.id == "7"
        assert user.role is Role.BUYER
        assert "password" not in user.to_storage()

    def test_strip_credentials(self) -> None:
        assert strip_credentials({"email": "a@b.com", "otp": "1", "passwordHash": "x"}) == {
            "email": "a@b.com"
        }


@pytest.mark.unit
class TestAuthResponse:
    def test_strips_user_credentials(self, buyer_payload: dict[str, Any]) -> None:
        response = AuthResponse.model_validate({"token": "T1", "user": buyer_payload})

        assert response.user.email == "a@b.com"

    def test_empty_token_rejected(self, buyer_payload: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            AuthResponse.model_validate({"token": "", "user": buyer_payload})


@pytest.mark.unit
class TestProjectAndBid:
    def test_project_status_labels_normalised(self) -> None:
        project = Project.model_validate(
            {
                "id": "p-1",
                "title": "T",
                "budgetMin": 1,
                "budgetMax": 2,
                "deadline": "2024-01-01",
                "status": "In Progress",
                "bids": [{"id": "b-1", "projectId": "p-1", "amount": 2, "bidStatus": "selected"}],
            }
        )

        assert project.status is ProjectStatus.IN_PROGRESS
        assert project.bids[0].bid_status is BidStatus.SELECTED

    def test_bid_defaults(self) -> None:
        bid = Bid.model_validate({"id": "b-1", "projectId": "p-1", "amount": 10})

        assert bid.bid_status is BidStatus.SUBMITTED
        assert bid.estimated_time == ""


@pytest.mark.unit
class TestSession:
    def test_absent_is_not_authenticated(self) -> None:
        assert not Session.absent().is_authenticated

    def test_token_without_profile_is_not_authenticated(self) -> None:
        assert not Session(token="T1", role=Role.BUYER).is_authenticated
