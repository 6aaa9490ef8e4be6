"""Unit tests for auth/sessions.py -- SessionManager.

Covers:
- authenticate() issues a 168-hour session and a credential that resolves
- authenticate() with an unknown email raises Unauthorized and writes nothing
- email matching is case-sensitive
- resolve_identity() returns the session owner's id and admin flag
- revoked sessions fail regardless of expiration
- expired sessions fail even while still valid (boundary: now == expiration)
- missing sessions and dangling users fail with InvalidCredential
- revoke() is idempotent
- StorageUnavailable from the backend propagates unchanged
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.models import Identity, User
from auth.sessions import SESSION_TTL, SessionManager
from auth.store import UserStore
from auth.tokens import CredentialCodec
from core.errors import CredentialFailure, InvalidCredential, StorageUnavailable, Unauthorized


@pytest.fixture
def alice(user_store: UserStore) -> int:
    return user_store.create_user(User(email="alice@example.com", first_name="Alice"))


@pytest.fixture
def root(user_store: UserStore) -> int:
    return user_store.create_user(User(email="root@example.com", first_name="Root", is_admin=True))


def _manager_at(user_store: UserStore, codec: CredentialCodec, when: datetime) -> SessionManager:
    return SessionManager(user_store, codec, clock=lambda: when)


class TestAuthenticate:
    def test_issues_session_with_fixed_ttl(self, sessions: SessionManager, user_store: UserStore, alice: int) -> None:
        before = datetime.now(timezone.utc)
        credential = sessions.authenticate("alice@example.com")
        after = datetime.now(timezone.utc)

        session_id = sessions.codec.verify(credential)
        session = user_store.get_session(session_id)
        assert session is not None
        assert session.user_id == alice
        assert session.valid is True
        assert before + SESSION_TTL <= session.expiration <= after + SESSION_TTL

    def test_ttl_is_168_hours(self) -> None:
        assert SESSION_TTL == timedelta(hours=168)

    def test_unknown_email_raises_and_creates_nothing(
        self, sessions: SessionManager, user_store: UserStore, alice: int
    ) -> None:
        with pytest.raises(Unauthorized):
            sessions.authenticate("nobody@example.com")
        assert user_store.list_sessions(alice) == []

    def test_email_match_is_case_sensitive(self, sessions: SessionManager, alice: int) -> None:
        with pytest.raises(Unauthorized):
            sessions.authenticate("Alice@Example.com")

    def test_each_call_opens_a_new_session(self, sessions: SessionManager, user_store: UserStore, alice: int) -> None:
        first = sessions.authenticate("alice@example.com")
        second = sessions.authenticate("alice@example.com")
        assert first != second
        assert len(user_store.list_sessions(alice)) == 2


class TestResolveIdentity:
    def test_valid_session_resolves_owner(self, sessions: SessionManager, alice: int) -> None:
        credential = sessions.authenticate("alice@example.com")
        identity = sessions.resolve_identity(credential)
        assert identity == Identity(user_id=alice, session_id=sessions.codec.verify(credential), is_admin=False)

    def test_admin_flag_comes_from_user_record(self, sessions: SessionManager, root: int) -> None:
        identity = sessions.resolve_identity(sessions.authenticate("root@example.com"))
        assert identity.user_id == root
        assert identity.is_admin is True

    def test_admin_flag_is_read_on_every_request(
        self, sessions: SessionManager, user_store: UserStore, alice: int
    ) -> None:
        credential = sessions.authenticate("alice@example.com")
        assert sessions.resolve_identity(credential).is_admin is False
        user_store.update_user(alice, is_admin=True)
        assert sessions.resolve_identity(credential).is_admin is True

    def test_revoked_session_fails(self, sessions: SessionManager, alice: int) -> None:
        credential = sessions.authenticate("alice@example.com")
        sessions.revoke(sessions.codec.verify(credential))
        with pytest.raises(InvalidCredential) as exc_info:
            sessions.resolve_identity(credential)
        assert exc_info.value.reason is CredentialFailure.revoked

    def test_revoked_session_fails_even_in_the_past(
        self, sessions: SessionManager, user_store: UserStore, codec: CredentialCodec, alice: int
    ) -> None:
        credential = sessions.authenticate("alice@example.com")
        sessions.revoke(codec.verify(credential))
        early = _manager_at(user_store, codec, datetime(2000, 1, 1, tzinfo=timezone.utc))
        with pytest.raises(InvalidCredential) as exc_info:
            early.resolve_identity(credential)
        assert exc_info.value.reason is CredentialFailure.revoked

    def test_expired_session_fails_while_valid(
        self, sessions: SessionManager, user_store: UserStore, codec: CredentialCodec, alice: int
    ) -> None:
        credential = sessions.authenticate("alice@example.com")
        later = _manager_at(user_store, codec, datetime.now(timezone.utc) + SESSION_TTL + timedelta(minutes=1))
        with pytest.raises(InvalidCredential) as exc_info:
            later.resolve_identity(credential)
        assert exc_info.value.reason is CredentialFailure.expired
        # Expiry is computed, never written back.
        assert user_store.get_session(codec.verify(credential)).valid is True

    def test_expiration_instant_itself_is_expired(
        self, sessions: SessionManager, user_store: UserStore, codec: CredentialCodec, alice: int
    ) -> None:
        credential = sessions.authenticate("alice@example.com")
        session = user_store.get_session(codec.verify(credential))

        at_expiry = _manager_at(user_store, codec, session.expiration)
        with pytest.raises(InvalidCredential):
            at_expiry.resolve_identity(credential)

        just_before = _manager_at(user_store, codec, session.expiration - timedelta(microseconds=1))
        assert just_before.resolve_identity(credential).user_id == alice

    def test_unknown_session_fails(self, sessions: SessionManager, codec: CredentialCodec) -> None:
        with pytest.raises(InvalidCredential) as exc_info:
            sessions.resolve_identity(codec.issue(999))
        assert exc_info.value.reason is CredentialFailure.session_not_found

    def test_dangling_user_fails(self, codec: CredentialCodec) -> None:
        """A session whose user row is gone (backend without cascades) is rejected."""
        real = UserStore("sqlite:///:memory:")
        uid = real.create_user(User(email="gone@example.com", first_name="Gone"))
        session = real.create_session(uid, SESSION_TTL)

        class _NoUsers:
            def get_session(self, session_id):
                return real.get_session(session_id)

            def get_user(self, user_id):
                return None

        manager = SessionManager(_NoUsers(), codec)
        with pytest.raises(InvalidCredential) as exc_info:
            manager.resolve_identity(codec.issue(session.id))
        assert exc_info.value.reason is CredentialFailure.user_not_found
        real.close()

    def test_foreign_credential_fails(self, sessions: SessionManager, alice: int) -> None:
        credential = sessions.authenticate("alice@example.com")
        other = SessionManager(sessions.store, CredentialCodec("a-completely-different-32-char-secret!!", "HS256"))
        with pytest.raises(InvalidCredential) as exc_info:
            other.resolve_identity(credential)
        assert exc_info.value.reason is CredentialFailure.bad_signature

    def test_public_message_hides_reason(self, sessions: SessionManager, codec: CredentialCodec) -> None:
        with pytest.raises(InvalidCredential) as exc_info:
            sessions.resolve_identity(codec.issue(12345))
        assert "session_not_found" not in exc_info.value.message


class TestRevoke:
    def test_revoke_twice_is_noop(self, sessions: SessionManager, user_store: UserStore, alice: int) -> None:
        session_id = sessions.codec.verify(sessions.authenticate("alice@example.com"))
        sessions.revoke(session_id)
        sessions.revoke(session_id)
        assert user_store.get_session(session_id).valid is False

    def test_revoke_unknown_is_noop(self, sessions: SessionManager) -> None:
        sessions.revoke(424242)

    def test_revoke_touches_only_that_session(
        self, sessions: SessionManager, user_store: UserStore, alice: int
    ) -> None:
        keep = sessions.authenticate("alice@example.com")
        drop = sessions.authenticate("alice@example.com")
        sessions.revoke(sessions.codec.verify(drop))
        assert sessions.resolve_identity(keep).user_id == alice


class TestStorageFailure:
    def test_storage_error_propagates_unchanged(self, codec: CredentialCodec) -> None:
        class _Down:
            def get_session(self, session_id):
                raise StorageUnavailable()

        manager = SessionManager(_Down(), codec)
        with pytest.raises(StorageUnavailable):
            manager.resolve_identity(codec.issue(1))

    def test_authenticate_storage_error_propagates(self, codec: CredentialCodec) -> None:
        class _Down:
            def get_user_by_email(self, email):
                raise StorageUnavailable()

        with pytest.raises(StorageUnavailable):
            SessionManager(_Down(), codec).authenticate("alice@example.com")
