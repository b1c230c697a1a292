"""AuthService: login, refresh rotation, registration."""
import threading
from unittest.mock import Mock

import pytest

from models import storage
from models.refresh_token import RefreshToken
from models.user import User
from services.auth_service import AuthService, TokenPair, UserSummary
from utils.exceptions import (
    AuthenticationRequiredError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidRefreshTokenError,
    InvalidSignatureError,
    MissingDefaultRoleError,
    PasswordMismatchError,
    UsernameTakenError,
)
from utils.security import (
    AuthenticatedPrincipal,
    build_password_hasher,
    decode_roles,
    decode_subject,
    decode_user_id,
    issue_token,
    verify_password,
)


class TestLogin:
    def test_unknown_user(self, service):
        with pytest.raises(InvalidCredentialsError):
            service.login("alice", "secret1")

    def test_unknown_user_still_verifies_a_hash(self, service, monkeypatch):
        checked = []
        real_verify = verify_password

        def recording_verify(password, password_hash, hasher):
            checked.append(password_hash)
            return real_verify(password, password_hash, hasher)

        monkeypatch.setattr("services.auth_service.verify_password", recording_verify)

        with pytest.raises(InvalidCredentialsError):
            service.login("nobody", "secret1")
        assert checked == [service._dummy_hash]

    def test_wrong_password(self, service, register_user):
        register_user("alice", "secret1")
        with pytest.raises(InvalidCredentialsError):
            service.login("alice", "secret2")

    def test_tokens_carry_subject_and_roles(self, service, settings, register_user):
        summary = register_user("alice", "secret1", extra_roles=["ROLE_ADMIN"])

        pair = service.login("alice", "secret1")

        assert decode_subject(pair.access_token, settings.access_secret) == "alice"
        assert decode_roles(pair.access_token, settings.access_secret) == ["ROLE_USER", "ROLE_ADMIN"]
        assert decode_user_id(pair.access_token, settings.access_secret) == summary.id
        assert decode_subject(pair.refresh_token, settings.refresh_secret) == "alice"

    def test_access_and_refresh_use_separate_secrets(self, service, settings, register_user):
        register_user("alice", "secret1")
        pair = service.login("alice", "secret1")
        assert pair.access_token != pair.refresh_token
        with pytest.raises(InvalidSignatureError):
            decode_subject(pair.refresh_token, settings.access_secret)

    def test_refresh_token_is_persisted(self, service, register_user):
        register_user("alice", "secret1")
        pair = service.login("alice", "secret1")
        assert storage.refresh_token_exists(pair.refresh_token)

    def test_each_login_is_its_own_session(self, service, register_user):
        register_user("alice", "secret1")
        first = service.login("alice", "secret1")
        second = service.login("alice", "secret1")
        assert first.refresh_token != second.refresh_token
        assert storage.refresh_token_exists(first.refresh_token)
        assert storage.refresh_token_exists(second.refresh_token)

    def test_password_rehashed_when_cost_changes(self, app, settings, register_user):
        register_user("alice", "secret1")
        old_hash = storage.find_user_by_username("alice").password_hash

        stronger = build_password_hasher(time_cost=2, memory_cost=8192)
        AuthService(storage, settings, hasher=stronger).login("alice", "secret1")

        new_hash = storage.find_user_by_username("alice").password_hash
        assert new_hash != old_hash
        assert verify_password("secret1", new_hash, stronger)


class TestRefresh:
    def test_rotation(self, service, settings, register_user):
        register_user("alice", "secret1")
        old = service.login("alice", "secret1")

        new = service.refresh(old.refresh_token)

        assert new.refresh_token != old.refresh_token
        assert decode_subject(new.access_token, settings.access_secret) == "alice"
        assert not storage.refresh_token_exists(old.refresh_token)
        assert storage.refresh_token_exists(new.refresh_token)

    def test_old_token_is_single_use(self, service, register_user):
        register_user("alice", "secret1")
        old = service.login("alice", "secret1")
        service.refresh(old.refresh_token)

        with pytest.raises(InvalidRefreshTokenError):
            service.refresh(old.refresh_token)

    def test_new_token_keeps_working(self, service, register_user):
        register_user("alice", "secret1")
        pair = service.login("alice", "secret1")
        for _ in range(3):
            pair = service.refresh(pair.refresh_token)
        assert storage.refresh_token_exists(pair.refresh_token)

    def test_unknown_token(self, service, settings, register_user):
        register_user("alice", "secret1")
        # correctly signed but never stored
        token = issue_token("alice", ["ROLE_USER"], settings.refresh_secret, 60_000)
        with pytest.raises(InvalidRefreshTokenError):
            service.refresh(token)

    def test_empty_token(self, service):
        with pytest.raises(InvalidRefreshTokenError):
            service.refresh("")

    def test_expired_stored_token(self, service, settings, register_user):
        summary = register_user("alice", "secret1")
        token = issue_token("alice", ["ROLE_USER"], settings.refresh_secret, -60_000, user_id=summary.id)
        storage.save_refresh_token(RefreshToken(token=token, user_id=summary.id))

        with pytest.raises(InvalidRefreshTokenError):
            service.refresh(token)
        # failed rotation is rolled back as a whole
        assert storage.refresh_token_exists(token)

    def test_access_token_is_not_a_refresh_token(self, service, register_user):
        summary = register_user("alice", "secret1")
        pair = service.login("alice", "secret1")
        storage.save_refresh_token(RefreshToken(token=pair.access_token, user_id=summary.id))

        with pytest.raises(InvalidRefreshTokenError):
            service.refresh(pair.access_token)

    def test_concurrent_refresh_has_one_winner(self, tmp_path, service, register_user):
        storage.reload(f"sqlite:///{tmp_path / 'auth.db'}")
        storage.seed_roles(["ROLE_USER", "ROLE_ADMIN"])
        register_user("alice", "secret1")
        old = service.login("alice", "secret1").refresh_token
        storage.close()

        workers = 8
        barrier = threading.Barrier(workers)
        results = []

        def attempt():
            barrier.wait()
            try:
                results.append(service.refresh(old))
            except Exception as exc:
                results.append(exc)
            finally:
                storage.close()

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        winners = [r for r in results if isinstance(r, TokenPair)]
        losers = [r for r in results if isinstance(r, InvalidRefreshTokenError)]
        assert len(results) == workers
        assert len(winners) == 1
        assert len(losers) == workers - 1
        assert not storage.refresh_token_exists(old)
        assert storage.refresh_token_exists(winners[0].refresh_token)


class TestRegister:
    def test_success(self, service):
        summary = service.register("alice", "secret1", "secret1", email="alice@example.com")

        assert isinstance(summary, UserSummary)
        assert summary.username == "alice"
        assert summary.email == "alice@example.com"
        assert not hasattr(summary, "password_hash")

        user = storage.find_user_by_username("alice")
        assert user.id == summary.id
        assert user.role_names == ["ROLE_USER"]
        assert user.password_hash != "secret1"

    def test_password_mismatch_checked_first(self, settings):
        store = Mock()
        service = AuthService(store, settings)

        with pytest.raises(PasswordMismatchError):
            service.register("alice", "secret1", "secret2")
        assert store.method_calls == []

    def test_mismatch_checked_before_length(self, settings):
        store = Mock()
        service = AuthService(store, settings)

        with pytest.raises(PasswordMismatchError):
            service.register("alice", "abc", "abd")
        assert store.method_calls == []

    @pytest.mark.parametrize("password", ["abc", "x" * 129])
    def test_password_length(self, service, password):
        with pytest.raises(InvalidPasswordError):
            service.register("alice", password, password)
        assert storage.find_user_by_username("alice") is None

    def test_password_length_is_configurable(self, settings):
        store = Mock()
        service = AuthService(store, settings, password_length=(10, 20))

        with pytest.raises(InvalidPasswordError) as exc:
            service.register("alice", "secret1", "secret1")
        assert "between 10 and 20" in exc.value.message
        assert store.method_calls == []

    def test_mismatch_wins_over_taken_username(self, service, register_user):
        register_user("alice", "secret1")
        with pytest.raises(PasswordMismatchError):
            service.register("alice", "secret1", "other")

    def test_username_taken(self, service, register_user):
        first = register_user("alice", "secret1", email="alice@example.com")

        with pytest.raises(UsernameTakenError):
            service.register("alice", "other-pass", "other-pass", email="mallory@example.com")

        user = storage.find_user_by_username("alice")
        assert user.id == first.id
        assert user.email == "alice@example.com"
        assert verify_password("secret1", user.password_hash, service.hasher)
        assert storage.count(User) == 1

    def test_missing_default_role_is_fatal(self, service):
        storage.get_session().delete(storage.find_role_by_name("ROLE_USER"))
        storage.save()

        with pytest.raises(MissingDefaultRoleError):
            service.register("alice", "secret1", "secret1")


class TestScenario:
    def test_login_register_login(self, service, settings):
        with pytest.raises(InvalidCredentialsError):
            service.login("alice", "secret1")

        summary = service.register("alice", "secret1", "secret1")
        assert storage.find_user_by_username("alice").role_names == ["ROLE_USER"]

        pair = service.login("alice", "secret1")
        assert decode_subject(pair.access_token, settings.access_secret) == "alice"
        assert decode_user_id(pair.access_token, settings.access_secret) == summary.id


class TestSessionHelpers:
    def test_revoke(self, service, register_user):
        summary = register_user("alice", "secret1")
        pair = service.login("alice", "secret1")

        assert service.revoke(pair.refresh_token, summary.id) is True
        assert service.revoke(pair.refresh_token, summary.id) is False
        with pytest.raises(InvalidRefreshTokenError):
            service.refresh(pair.refresh_token)

    def test_revoke_only_own_tokens(self, service, register_user):
        register_user("alice", "secret1")
        bob = register_user("bob", "secret1")
        pair = service.login("alice", "secret1")

        assert service.revoke(pair.refresh_token, bob.id) is False
        assert storage.refresh_token_exists(pair.refresh_token)

    def test_current_user(self, service, register_user):
        summary = register_user("alice", "secret1")
        principal = AuthenticatedPrincipal(user_id=summary.id, username="alice", authorities=("ROLE_USER",))

        current = service.current_user(principal)
        assert (current.id, current.username, current.roles) == (summary.id, "alice", ("ROLE_USER",))

    def test_current_user_gone(self, service):
        principal = AuthenticatedPrincipal(user_id=999, username="ghost", authorities=())
        with pytest.raises(AuthenticationRequiredError):
            service.current_user(principal)
