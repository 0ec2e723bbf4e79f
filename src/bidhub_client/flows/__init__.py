"""Stateful client-side flows layered on the API client."""

from bidhub_client.flows.auth import AuthFlowController, AuthMode, AuthState, RegistrationAttempt
from bidhub_client.flows.bids import (
    BidCompletionAttempt,
    BidSelector,
    BidSubmissionFlow,
    BuyerProjectView,
    CompletionPanels,
)
from bidhub_client.flows.navigation import NavigationController, NavItem
from bidhub_client.flows.profile import ProfileLoader
from bidhub_client.flows.projects import ProjectCreationFlow

__all__ = [
    "AuthFlowController",
    "AuthMode",
    "AuthState",
    "BidCompletionAttempt",
    "BidSelector",
    "BidSubmissionFlow",
    "BuyerProjectView",
    "CompletionPanels",
    "NavItem",
    "NavigationController",
    "ProfileLoader",
    "ProjectCreationFlow",
    "RegistrationAttempt",
]
