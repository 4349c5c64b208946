"""Tests for modules/auth/service.py."""

import asyncio
import logging
import time
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from modules.auth.exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidSessionError,
    MissingSessionError,
    UserNotFoundError,
)
from modules.auth.hashing import hash_session_token
from modules.auth.models import (
    ActiveSession,
    PublicUser,
    RegisterRequest,
    UpdateProfileRequest,
    UserRole,
)
from modules.auth.service import AuthService, normalize_email
from shared.config import Settings
from shared.database import StoreUnavailableError


@pytest.fixture
def register_request(alice) -> RegisterRequest:
    return RegisterRequest(**alice)


async def _register_and_login(service, request):
    await service.register(request)
    return await service.login(request.email, request.password)


class TestNormalizeEmail:
    def test_strips_and_lowercases(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    def test_none_becomes_empty(self):
        assert normalize_email(None) == ""


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_public_profile(self, auth_service, register_request):
        """Registering returns the profile without any password material."""
        user = await auth_service.register(register_request)

        assert isinstance(user, PublicUser)
        assert user.email == "alice@example.com"
        assert user.name == "Alice"
        assert user.role == UserRole.CANE_USER
        assert user.birth_date == date(1950, 4, 12)
        assert user.home_long == pytest.approx(8.5417)
        assert user.home_lat == pytest.approx(47.3769)
        assert "password_hash" not in user.model_dump()

    @pytest.mark.asyncio
    async def test_register_stores_bcrypt_hash(self, auth_service, store, register_request):
        await auth_service.register(register_request)

        stored = store.find_user_by_email("alice@example.com")
        assert stored.password_hash != "pw123"
        assert stored.password_hash.startswith("$2b$")

    @pytest.mark.asyncio
    async def test_register_does_not_create_session(self, auth_service, store, clock, register_request):
        await auth_service.register(register_request)
        assert list(store.list_active_sessions(clock.now)) == []

    @pytest.mark.asyncio
    async def test_register_normalizes_email(self, auth_service, register_request):
        request = register_request.model_copy(update={"email": "  ALICE@Example.com "})
        user = await auth_service.register(request)
        assert user.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_register_optional_fields(self, auth_service):
        user = await auth_service.register(
            RegisterRequest(email="carol@example.com", password="pw", name="Carol", role="Caregiver")
        )
        assert user.role == UserRole.CAREGIVER
        assert user.birth_date is None
        assert user.home_long is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["email", "password", "name", "role"])
    async def test_register_missing_field(self, auth_service, register_request, field):
        request = register_request.model_copy(update={field: ""})

        with pytest.raises(InvalidInputError) as exc_info:
            await auth_service.register(request)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"missing": [field]}

    @pytest.mark.asyncio
    async def test_register_whitespace_name_is_missing(self, auth_service, register_request):
        with pytest.raises(InvalidInputError):
            await auth_service.register(register_request.model_copy(update={"name": "   "}))

    @pytest.mark.asyncio
    async def test_register_invalid_role(self, auth_service, register_request):
        with pytest.raises(InvalidInputError) as exc_info:
            await auth_service.register(register_request.model_copy(update={"role": "Admin"}))
        assert exc_info.value.details["allowed"] == ["CaneUser", "Caregiver"]

    @pytest.mark.asyncio
    async def test_register_invalid_email(self, auth_service, register_request):
        with pytest.raises(InvalidInputError):
            await auth_service.register(register_request.model_copy(update={"email": "not-an-email"}))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [("home_long", 181.0), ("home_lat", -90.5)])
    async def test_register_coordinates_out_of_range(self, auth_service, register_request, field, value):
        with pytest.raises(InvalidInputError) as exc_info:
            await auth_service.register(register_request.model_copy(update={field: value}))
        assert exc_info.value.details == {"field": field}

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, auth_service, register_request):
        await auth_service.register(register_request)

        with pytest.raises(EmailAlreadyExistsError) as exc_info:
            await auth_service.register(register_request)
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_register_duplicate_email_differs_in_case(self, auth_service, register_request):
        await auth_service.register(register_request)

        with pytest.raises(EmailAlreadyExistsError):
            await auth_service.register(register_request.model_copy(update={"email": "Alice@Example.com"}))

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_registration(self, auth_service, register_request):
        """Exactly one of two racing registrations for one email wins."""
        results = await asyncio.gather(
            auth_service.register(register_request),
            auth_service.register(register_request),
            return_exceptions=True,
        )

        assert sum(isinstance(r, PublicUser) for r in results) == 1
        assert sum(isinstance(r, EmailAlreadyExistsError) for r in results) == 1


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_issues_session(self, auth_service, register_request, store):
        result = await _register_and_login(auth_service, register_request)

        assert result.user.email == "alice@example.com"
        assert len(result.session.token) == 64
        stored = store.find_active_session(
            hash_session_token(result.session.token), result.session.expires_at - timedelta(seconds=1)
        )
        assert stored is not None
        assert stored.token_digest != result.session.token

    @pytest.mark.asyncio
    async def test_login_session_lasts_seven_days(self, auth_service, register_request, clock):
        result = await _register_and_login(auth_service, register_request)
        assert result.session.expires_at == clock.now + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_login_email_case_insensitive(self, auth_service, register_request):
        await auth_service.register(register_request)
        result = await auth_service.login(" ALICE@example.com", "pw123")
        assert result.user.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_login_twice_gives_distinct_sessions(self, auth_service, register_request):
        await auth_service.register(register_request)
        first = await auth_service.login("alice@example.com", "pw123")
        second = await auth_service.login("alice@example.com", "pw123")

        assert first.session.token != second.session.token
        assert (await auth_service.get_current_session(first.session.token)).email == "alice@example.com"
        assert (await auth_service.get_current_session(second.session.token)).email == "alice@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [("", "pw123"), ("alice@example.com", ""), ("  ", "x")])
    async def test_login_missing_fields(self, auth_service, email, password):
        with pytest.raises(InvalidInputError):
            await auth_service.login(email, password)

    @pytest.mark.asyncio
    async def test_login_wrong_password_and_unknown_email_are_identical(self, auth_service, register_request):
        """Failures must not reveal whether the email is registered."""
        await auth_service.register(register_request)

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            await auth_service.login("alice@example.com", "nope")
        with pytest.raises(InvalidCredentialsError) as unknown_email:
            await auth_service.login("nobody@example.com", "pw123")

        assert wrong_password.value.to_dict() == unknown_email.value.to_dict()
        assert wrong_password.value.status_code == 401

    @pytest.mark.asyncio
    async def test_login_unknown_email_runs_dummy_verify(self, store, settings, clock):
        hasher = MagicMock()
        hasher.verify_dummy.return_value = False
        service = AuthService(store, hasher=hasher, settings=settings, clock=clock)

        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody@example.com", "pw123")

        hasher.verify_dummy.assert_called_once_with("pw123")
        hasher.verify.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_login_creates_no_session(self, auth_service, register_request, store, clock):
        await auth_service.register(register_request)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice@example.com", "nope")
        assert list(store.list_active_sessions(clock.now)) == []

    @pytest.mark.asyncio
    async def test_login_failure_logs_without_password(self, auth_service, register_request, caplog):
        await auth_service.register(register_request)

        with caplog.at_level(logging.WARNING, logger="modules.auth.service"):
            with pytest.raises(InvalidCredentialsError):
                await auth_service.login("alice@example.com", "secret-guess")

        assert "Login failed" in caplog.text
        assert "secret-guess" not in caplog.text


class TestGetCurrentSession:
    @pytest.mark.asyncio
    async def test_returns_profile(self, auth_service, register_request):
        result = await _register_and_login(auth_service, register_request)
        user = await auth_service.get_current_session(result.session.token)
        assert user == result.user

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token(self, auth_service, token):
        with pytest.raises(MissingSessionError) as exc_info:
            await auth_service.get_current_session(token)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_token(self, auth_service):
        with pytest.raises(InvalidSessionError) as exc_info:
            await auth_service.get_current_session("0" * 64)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_session_rejected_while_row_exists(self, auth_service, register_request, store, clock):
        result = await _register_and_login(auth_service, register_request)
        clock.advance(days=8)

        with pytest.raises(InvalidSessionError):
            await auth_service.get_current_session(result.session.token)
        assert store.delete_session(result.session.session_id) == 1

    @pytest.mark.asyncio
    async def test_orphaned_session(self, settings, clock, hasher):
        """A live session whose user row is gone yields USER_NOT_FOUND."""
        token = "a" * 64
        mock_store = MagicMock()
        mock_store.find_active_session.return_value = ActiveSession(
            session_id="s-1",
            user_id="ghost",
            token_digest=hash_session_token(token),
            expires_at=clock.now + timedelta(days=1),
        )
        mock_store.find_user_by_id.return_value = None
        service = AuthService(mock_store, hasher=hasher, settings=settings, clock=clock)

        with pytest.raises(UserNotFoundError) as exc_info:
            await service.get_current_session(token)

        assert exc_info.value.status_code == 404
        assert exc_info.value.details == {"user_id": "ghost"}


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_revokes_session(self, auth_service, register_request):
        result = await _register_and_login(auth_service, register_request)

        outcome = await auth_service.logout(result.session.token)

        assert outcome.logged_out is True
        assert outcome.message == "Logged out successfully"
        with pytest.raises(InvalidSessionError):
            await auth_service.get_current_session(result.session.token)

    @pytest.mark.asyncio
    async def test_logout_only_revokes_presented_session(self, auth_service, register_request):
        await auth_service.register(register_request)
        first = await auth_service.login("alice@example.com", "pw123")
        second = await auth_service.login("alice@example.com", "pw123")

        await auth_service.logout(first.session.token)

        user = await auth_service.get_current_session(second.session.token)
        assert user.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_logout_without_token(self, auth_service):
        outcome = await auth_service.logout(None)
        assert outcome.logged_out is False
        assert outcome.message == "Not logged in"

    @pytest.mark.asyncio
    async def test_logout_is_idempotent(self, auth_service, register_request):
        result = await _register_and_login(auth_service, register_request)

        await auth_service.logout(result.session.token)
        outcome = await auth_service.logout(result.session.token)

        assert outcome.message == "Logged out successfully"

    @pytest.mark.asyncio
    async def test_logout_unknown_token(self, auth_service):
        outcome = await auth_service.logout("f" * 64)
        assert outcome.logged_out is True


class TestAccountManagement:
    @pytest.mark.asyncio
    async def test_update_profile(self, auth_service, register_request):
        user = await auth_service.register(register_request)

        updated = await auth_service.update_profile(
            user.user_id, UpdateProfileRequest(name="Alice B.", home_lat=46.0)
        )

        assert updated.name == "Alice B."
        assert updated.home_lat == pytest.approx(46.0)
        assert updated.home_long == pytest.approx(8.5417)

    @pytest.mark.asyncio
    async def test_update_role(self, auth_service, register_request):
        user = await auth_service.register(register_request)
        updated = await auth_service.update_profile(user.user_id, UpdateProfileRequest(role="Caregiver"))
        assert updated.role == UserRole.CAREGIVER

    @pytest.mark.asyncio
    async def test_update_password(self, auth_service, register_request):
        user = await auth_service.register(register_request)

        await auth_service.update_profile(user.user_id, UpdateProfileRequest(password="new-pw"))

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice@example.com", "pw123")
        result = await auth_service.login("alice@example.com", "new-pw")
        assert result.user.user_id == user.user_id

    @pytest.mark.asyncio
    async def test_update_email_normalized(self, auth_service, register_request):
        user = await auth_service.register(register_request)
        updated = await auth_service.update_profile(user.user_id, UpdateProfileRequest(email=" New@Example.com"))
        assert updated.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_update_email_taken(self, auth_service, register_request):
        user = await auth_service.register(register_request)
        await auth_service.register(register_request.model_copy(update={"email": "bob@example.com"}))

        with pytest.raises(EmailAlreadyExistsError):
            await auth_service.update_profile(user.user_id, UpdateProfileRequest(email="bob@example.com"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [{"name": "  "}, {"email": ""}, {"role": "Admin"}, {"home_long": -200.0}],
    )
    async def test_update_rejects_bad_values(self, auth_service, register_request, changes):
        user = await auth_service.register(register_request)
        with pytest.raises(InvalidInputError):
            await auth_service.update_profile(user.user_id, UpdateProfileRequest(**changes))

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, auth_service):
        with pytest.raises(UserNotFoundError):
            await auth_service.update_profile("missing", UpdateProfileRequest(name="X"))

    @pytest.mark.asyncio
    async def test_delete_account_removes_sessions(self, auth_service, register_request):
        result = await _register_and_login(auth_service, register_request)

        await auth_service.delete_account(result.user.user_id)

        with pytest.raises(InvalidSessionError):
            await auth_service.get_current_session(result.session.token)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice@example.com", "pw123")

    @pytest.mark.asyncio
    async def test_delete_unknown_account(self, auth_service):
        with pytest.raises(UserNotFoundError):
            await auth_service.delete_account("missing")

    @pytest.mark.asyncio
    async def test_revoke_all_sessions(self, auth_service, register_request):
        await auth_service.register(register_request)
        first = await auth_service.login("alice@example.com", "pw123")
        second = await auth_service.login("alice@example.com", "pw123")

        revoked = await auth_service.revoke_all_sessions(first.user.user_id)

        assert revoked == 2
        for token in (first.session.token, second.session.token):
            with pytest.raises(InvalidSessionError):
                await auth_service.get_current_session(token)

    @pytest.mark.asyncio
    async def test_purge_expired_sessions(self, auth_service, register_request, store, clock):
        old = await _register_and_login(auth_service, register_request)
        clock.advance(days=4)
        fresh = await auth_service.login("alice@example.com", "pw123")
        clock.advance(days=4)

        purged = await auth_service.purge_expired_sessions()

        assert purged == 1
        assert store.delete_session(old.session.session_id) == 0
        assert (await auth_service.get_current_session(fresh.session.token)).email == "alice@example.com"


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_check_store_healthy(self, auth_service):
        assert await auth_service.check_store() is True

    @pytest.mark.asyncio
    async def test_check_store_unavailable(self, settings, hasher):
        mock_store = MagicMock()
        mock_store.ping.side_effect = StoreUnavailableError("down")
        service = AuthService(mock_store, hasher=hasher, settings=settings)

        assert await service.check_store() is False

    @pytest.mark.asyncio
    async def test_store_error_propagates(self, settings, hasher):
        mock_store = MagicMock()
        mock_store.find_user_by_email.side_effect = StoreUnavailableError("down")
        service = AuthService(mock_store, hasher=hasher, settings=settings)

        with pytest.raises(StoreUnavailableError):
            await service.login("alice@example.com", "pw123")

    @pytest.mark.asyncio
    async def test_slow_store_times_out(self, hasher):
        """A store call that outlives the deadline surfaces as unavailable."""
        mock_store = MagicMock()
        mock_store.find_user_by_email.side_effect = lambda email: time.sleep(0.5)
        settings = Settings(storage_backend="memory", bcrypt_rounds=4, store_call_timeout=0.05)
        service = AuthService(mock_store, hasher=hasher, settings=settings)

        with pytest.raises(StoreUnavailableError):
            await service.login("alice@example.com", "pw123")
