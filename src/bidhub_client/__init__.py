"""BidHub client — API client and session/flow controllers for the BidHub marketplace."""

from bidhub_client.client import MarketplaceClient
from bidhub_client.factory import ClientContext, ClientFactory
from bidhub_client.notices import NoticeBoard
from bidhub_client.schemas import Role, Session, UserSummary
from bidhub_client.session import SessionStore

__version__ = "0.1.0"

__all__ = [
    "ClientContext",
    "ClientFactory",
    "MarketplaceClient",
    "NoticeBoard",
    "Role",
    "Session",
    "SessionStore",
    "UserSummary",
]
