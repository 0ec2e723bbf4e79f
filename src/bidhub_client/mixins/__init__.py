"""Endpoint mixin classes for MarketplaceClient."""

from bidhub_client.mixins.auth import AuthMixin
from bidhub_client.mixins.bids import BidsMixin
from bidhub_client.mixins.projects import ProjectsMixin

__all__ = [
    "AuthMixin",
    "BidsMixin",
    "ProjectsMixin",
]
