"""
Navigation Controller — role-gated links and route guards.

Visibility rules:

- Buyer Dashboard: no session, or role BUYER
- Seller Dashboard: no session, or role SELLER
- Profile, Logout: session present
- Login, Register: no session

A visitor without a session has not committed to a role yet, so both
dashboards stay discoverable; after login the links narrow to the user's role.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from bidhub_client.schemas import Role, Session

if TYPE_CHECKING:
    from bidhub_client.session import SessionStore

logger = logging.getLogger(__name__)


class NavItem(str, Enum):
    HOME = "home"
    BUYER_DASHBOARD = "buyer_dashboard"
    SELLER_DASHBOARD = "seller_dashboard"
    PROFILE = "profile"
    LOGOUT = "logout"
    LOGIN = "login"
    REGISTER = "register"


@dataclass(frozen=True)
class NavLink:
    item: NavItem
    label: str
    href: str | None = None

    @property
    def is_action(self) -> bool:
        """Actions (login, register, logout) open a flow instead of a route."""
        return self.href is None


NAV_LINKS: tuple[NavLink, ...] = (
    NavLink(NavItem.HOME, "Home", "/"),
    NavLink(NavItem.BUYER_DASHBOARD, "Buyer Dashboard", "/dashboard/buyer"),
    NavLink(NavItem.SELLER_DASHBOARD, "Seller Dashboard", "/dashboard/seller"),
    NavLink(NavItem.PROFILE, "Profile", "/profile"),
    NavLink(NavItem.LOGOUT, "Logout"),
    NavLink(NavItem.LOGIN, "Login"),
    NavLink(NavItem.REGISTER, "Register"),
)


def is_visible(item: NavItem, session: Session) -> bool:
    """Apply the visibility rules for one navigation entry."""
    authenticated = session.is_authenticated
    if item is NavItem.HOME:
        return True
    if item is NavItem.BUYER_DASHBOARD:
        return not authenticated or session.role is Role.BUYER
    if item is NavItem.SELLER_DASHBOARD:
        return not authenticated or session.role is Role.SELLER
    if item in (NavItem.PROFILE, NavItem.LOGOUT):
        return authenticated
    return not authenticated


def visible_links(session: Session) -> tuple[NavLink, ...]:
    return tuple(link for link in NAV_LINKS if is_visible(link.item, session))


@dataclass(frozen=True)
class RouteDecision:
    allowed: bool
    redirect_to: str | None = None
    reason: str | None = None


_ROLE_ROUTES: tuple[tuple[str, Role], ...] = (
    ("/dashboard/buyer", Role.BUYER),
    ("/dashboard/seller", Role.SELLER),
)
_SESSION_ROUTES: tuple[str, ...] = ("/profile",)


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def guard_route(path: str, session: Session) -> RouteDecision:
    """Decide whether ``session`` may open ``path``."""
    for prefix, role in _ROLE_ROUTES:
        if _matches(path, prefix):
            if not session.is_authenticated:
                return RouteDecision(False, "/", "login_required")
            if session.role is not role:
                return RouteDecision(False, "/", "wrong_role")
            return RouteDecision(True)
    for prefix in _SESSION_ROUTES:
        if _matches(path, prefix) and not session.is_authenticated:
            return RouteDecision(False, "/", "login_required")
    return RouteDecision(True)


class NavigationController:
    """Keeps the visible navigation in sync with the persisted session.

    Subscribes to the session store, so changes made by this context or by
    another one (another window logging out) are reflected immediately.
    """

    def __init__(
        self,
        session_store: SessionStore,
        on_change: Callable[[tuple[NavLink, ...]], None] | None = None,
    ) -> None:
        self._on_change = on_change
        self._session = session_store.load()
        self._links = visible_links(self._session)
        self._unsubscribe: Callable[[], None] | None = session_store.subscribe(
            self._on_session_change
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def links(self) -> tuple[NavLink, ...]:
        return self._links

    def is_visible(self, item: NavItem) -> bool:
        return is_visible(item, self._session)

    def guard(self, path: str) -> RouteDecision:
        return guard_route(path, self._session)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_session_change(self, session: Session) -> None:
        self._session = session
        links = visible_links(session)
        if links == self._links:
            return
        self._links = links
        logger.debug(
            "Navigation updated",
            extra={"links": [link.item.value for link in links]},
        )
        if self._on_change is not None:
            self._on_change(links)
