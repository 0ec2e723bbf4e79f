"""ClientFactory — wires settings into a ready-to-use client context."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from bidhub_client.client import MarketplaceClient
from bidhub_client.config import Settings, get_settings
from bidhub_client.flows.auth import AuthFlowController
from bidhub_client.flows.navigation import NavigationController
from bidhub_client.formatting import format_amount, format_budget_range
from bidhub_client.logging import setup_logging
from bidhub_client.notices import NoticeBoard
from bidhub_client.session import SessionStore
from bidhub_client.storage import FileStorage, MemoryStorageArea

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from bidhub_client.schemas import Project
    from bidhub_client.storage import Storage

logger = logging.getLogger(__name__)


@dataclass
class ClientContext:
    """Everything one application window needs, sharing a single session store."""

    settings: Settings
    storage: Storage
    session_store: SessionStore
    client: MarketplaceClient
    notices: NoticeBoard
    auth: AuthFlowController
    navigation: NavigationController
    navigated_to: list[str] = field(default_factory=list)
    watch_task: asyncio.Task[None] | None = field(default=None, repr=False)

    def start_watching(self) -> asyncio.Task[None] | None:
        """Poll a file-backed storage for changes made by other processes.

        Returns None for storages that notify on their own.
        """
        if not isinstance(self.storage, FileStorage):
            return None
        if self.watch_task is None or self.watch_task.done():
            interval = self.settings.storage.poll_interval_seconds
            self.watch_task = asyncio.create_task(self.storage.watch(interval))
        return self.watch_task

    def format_amount(self, amount: float) -> str:
        return format_amount(amount, self.settings.display.currency_symbol)

    def format_budget(self, project: Project) -> str:
        return format_budget_range(
            project.budget_min, project.budget_max, self.settings.display.currency_symbol
        )

    async def close(self) -> None:
        if self.watch_task is not None:
            self.watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.watch_task
            self.watch_task = None
        self.navigation.close()
        self.session_store.close()
        await self.client.close()


class ClientFactory:
    """Builds client contexts from Settings.

    Contexts created by one factory share a storage area when the memory
    backend is configured, so they behave like several windows of one
    browser profile. With the file backend every context opens the same
    directory.

    Args:
        settings: Loaded Settings. If None, ``get_settings()`` is used.
        transport: Optional httpx transport passed to every client.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self._transport = transport
        self._memory_area = MemoryStorageArea()

    def configure_logging(self) -> logging.Logger:
        """Install JSON logging for the ``bidhub_client`` logger tree."""
        return setup_logging(
            self.settings.logging.level,
            "bidhub_client",
            self.settings.logging.directory,
        )

    def create_storage(self) -> Storage:
        storage_config = self.settings.storage
        if storage_config.backend == "memory":
            return self._memory_area.context()
        assert storage_config.directory is not None
        return FileStorage(Path(storage_config.directory))

    def create_context(self, on_navigate: Callable[[str], None] | None = None) -> ClientContext:
        """Create a context with its own storage handle, client, and flows."""
        storage = self.create_storage()
        session_store = SessionStore(storage)
        notices = NoticeBoard(ttl_seconds=self.settings.notices.ttl_seconds)
        client = MarketplaceClient(self.settings.api, session_store, transport=self._transport)
        navigated_to: list[str] = []

        def _navigate(path: str) -> None:
            navigated_to.append(path)
            if on_navigate is not None:
                on_navigate(path)

        auth = AuthFlowController(
            client,
            session_store,
            notices,
            on_navigate=_navigate,
        )
        navigation = NavigationController(session_store)
        logger.debug("Created client context", extra={"storage": repr(storage)})
        return ClientContext(
            settings=self.settings,
            storage=storage,
            session_store=session_store,
            client=client,
            notices=notices,
            auth=auth,
            navigation=navigation,
            navigated_to=navigated_to,
        )
