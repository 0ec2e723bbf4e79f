"""Unit tests for the SessionStore adapter."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from bidhub_client.exceptions import StorageUnavailableError
from bidhub_client.schemas import Role, Session, UserSummary
from bidhub_client.session import ROLE_KEY, TOKEN_DIGEST_FIELD, TOKEN_KEY, USER_KEY, SessionStore

if TYPE_CHECKING:
    from bidhub_client.storage import MemoryStorage, MemoryStorageArea


@pytest.mark.unit
class TestLoad:
    """Tests for load() degradation rules."""

    def test_empty_storage_is_absent(self, session_store: SessionStore) -> None:
        assert session_store.load() == Session.absent()

    def test_missing_storage_is_absent(self) -> None:
        assert SessionStore(None).load() == Session.absent()

    def test_load_after_clear_is_absent(
        self, session_store: SessionStore, buyer: UserSummary
    ) -> None:
        session_store.save("T1", buyer)
        session_store.clear()

        assert session_store.load() == Session.absent()

    @pytest.mark.parametrize("missing_key", [TOKEN_KEY, ROLE_KEY, USER_KEY])
    def test_any_missing_key_is_absent(
        self,
        session_store: SessionStore,
        storage: MemoryStorage,
        buyer: UserSummary,
        missing_key: str,
    ) -> None:
        session_store.save("T1", buyer)
        storage.remove_item(missing_key)

        assert session_store.load() == Session.absent()

    @pytest.mark.parametrize("bad_user", ["{not json", "[]", '{"id": "1"}', "null"])
    def test_malformed_profile_is_absent(
        self,
        session_store: SessionStore,
        storage: MemoryStorage,
        buyer: UserSummary,
        bad_user: str,
    ) -> None:
        session_store.save("T1", buyer)
        storage.set_item(USER_KEY, bad_user)

        assert session_store.load() == Session.absent()

    def test_unknown_role_is_absent(
        self, session_store: SessionStore, storage: MemoryStorage, buyer: UserSummary
    ) -> None:
        session_store.save("T1", buyer)
        storage.set_item(ROLE_KEY, "ADMIN")

        assert session_store.load() == Session.absent()

    def test_role_disagreeing_with_profile_is_absent(
        self, session_store: SessionStore, storage: MemoryStorage, buyer: UserSummary
    ) -> None:
        session_store.save("T1", buyer)
        storage.set_item(ROLE_KEY, Role.SELLER.value)

        assert session_store.load() == Session.absent()

    def test_profile_saved_for_another_token_is_absent(
        self, session_store: SessionStore, storage: MemoryStorage, buyer: UserSummary
    ) -> None:
        session_store.save("T1", buyer)
        storage.set_item(TOKEN_KEY, "T-other")

        assert session_store.load() == Session.absent()

    def test_closed_storage_degrades_to_absent(
        self, session_store: SessionStore, storage: MemoryStorage, buyer: UserSummary
    ) -> None:
        session_store.save("T1", buyer)
        storage.close()

        assert session_store.load() == Session.absent()


@pytest.mark.unit
class TestSave:
    """Tests for save()."""

    def test_save_then_load_round_trips(
        self, session_store: SessionStore, buyer_payload: dict[str, Any]
    ) -> None:
        saved = session_store.save("T1", buyer_payload)
        loaded = session_store.load()

        assert loaded == saved
        assert loaded.token == "T1"
        assert loaded.role is Role.BUYER
        assert loaded.profile is not None
        assert loaded.profile.email == "a@b.com"
        assert loaded.is_authenticated

    def test_credentials_are_not_persisted(
        self,
        session_store: SessionStore,
        storage: MemoryStorage,
        buyer_payload: dict[str, Any],
    ) -> None:
        session_store.save("T1", buyer_payload)

        stored = json.loads(storage.get_item(USER_KEY) or "{}")
        assert "password" not in stored
        assert "T1" not in stored.values()
        stored.pop(TOKEN_DIGEST_FIELD)
        assert stored == {
            "id": "1",
            "name": "Ann",
            "email": "a@b.com",
            "role": "BUYER",
            "createdAt": "2024-01-01",
        }

    def test_role_key_matches_profile(
        self, session_store: SessionStore, storage: MemoryStorage, seller: UserSummary
    ) -> None:
        session_store.save("T2", seller)

        assert storage.get_item(ROLE_KEY) == "SELLER"
        assert storage.get_item(TOKEN_KEY) == "T2"

    def test_save_without_storage_raises(self, buyer: UserSummary) -> None:
        with pytest.raises(StorageUnavailableError):
            SessionStore(None).save("T1", buyer)

    def test_clear_without_storage_raises(self) -> None:
        with pytest.raises(StorageUnavailableError):
            SessionStore(None).clear()


@pytest.mark.unit
class TestSubscribe:
    """Tests for change notifications."""

    def test_same_context_save_notifies(
        self, session_store: SessionStore, buyer: UserSummary
    ) -> None:
        seen: list[Session] = []
        session_store.subscribe(seen.append)

        session_store.save("T1", buyer)

        assert len(seen) == 1
        assert seen[0].token == "T1"

    def test_same_context_clear_notifies_absent(
        self, session_store: SessionStore, buyer: UserSummary
    ) -> None:
        session_store.save("T1", buyer)
        seen: list[Session] = []
        session_store.subscribe(seen.append)

        session_store.clear()

        assert seen == [Session.absent()]

    def test_unsubscribe_stops_notifications(
        self, session_store: SessionStore, buyer: UserSummary
    ) -> None:
        seen: list[Session] = []
        unsubscribe = session_store.subscribe(seen.append)
        unsubscribe()

        session_store.save("T1", buyer)

        assert seen == []

    def test_other_context_changes_notify(
        self, storage_area: MemoryStorageArea, buyer: UserSummary
    ) -> None:
        tab_a = SessionStore(storage_area.context())
        tab_b = SessionStore(storage_area.context())
        seen: list[Session] = []
        tab_b.subscribe(seen.append)

        tab_a.save("T1", buyer)

        assert seen[-1].token == "T1"
        assert tab_b.load().token == "T1"

        tab_a.clear()

        assert seen[-1] == Session.absent()

    def test_failing_listener_does_not_block_others(
        self, session_store: SessionStore, buyer: UserSummary
    ) -> None:
        def _boom(_session: Session) -> None:
            raise RuntimeError("listener bug")

        seen: list[Session] = []
        session_store.subscribe(_boom)
        session_store.subscribe(seen.append)

        session_store.save("T1", buyer)

        assert len(seen) == 1

    def test_close_detaches_from_storage(
        self, storage_area: MemoryStorageArea, buyer: UserSummary
    ) -> None:
        tab_a = SessionStore(storage_area.context())
        tab_b = SessionStore(storage_area.context())
        seen: list[Session] = []
        tab_b.subscribe(seen.append)
        tab_b.close()

        tab_a.save("T1", buyer)

        assert seen == []

    def test_other_context_never_sees_mixed_triple(
        self, storage_area: MemoryStorageArea, buyer: UserSummary
    ) -> None:
        other_buyer = UserSummary(
            id="3", name="Bea", email="bea@b.com", role=buyer.role, created_at="2024-03-01"
        )
        tab_a = SessionStore(storage_area.context())
        tab_b = SessionStore(storage_area.context())
        tab_a.save("T1", buyer)
        seen: list[tuple[str | None, str | None]] = []
        tab_b.subscribe(
            lambda session: seen.append(
                (session.token, session.profile.id if session.profile else None)
            )
        )

        tab_a.save("T2", other_buyer)

        assert seen == [("T2", "3")]

    def test_mid_save_load_is_old_or_absent(
        self, storage_area: MemoryStorageArea, buyer: UserSummary
    ) -> None:
        other_buyer = UserSummary(
            id="3", name="Bea", email="bea@b.com", role=buyer.role, created_at="2024-03-01"
        )
        tab_a = SessionStore(storage_area.context())
        reader_storage = storage_area.context()
        tab_b = SessionStore(reader_storage)
        tab_a.save("T1", buyer)
        observed: list[Session] = []
        reader_storage.add_listener(lambda _event: observed.append(tab_b.load()))

        tab_a.save("T2", other_buyer)

        for session in observed[:-1]:
            assert session == Session.absent() or (
                session.token == "T1" and session.profile is not None and session.profile.id == "1"
            )
        assert observed[-1].token == "T2"
        assert observed[-1].profile is not None
        assert observed[-1].profile.id == "3"
