# Overview: Pytest coverage for user accounts, sign-in device limits and bearer tokens.

"""
Account Tests

SECURITY TESTS:
1. Passwords are stored as bcrypt hashes and strength-checked
2. Deactivated users cannot sign in and lose their tokens
3. A third device is refused while two are registered
4. Logout revokes the token but keeps the device
"""

import pytest

from shopdesk.errors import AuthenticationError, ConflictError, DeviceLimitError, ValidationError
from shopdesk.services import auth_service, session_service
from shopdesk.services.auth_service import PasswordValidationError

PASSWORD = "Passw0rd!"

LAPTOP = {"name": "Laptop", "browser": "Firefox", "os": "Linux"}
PHONE = {"name": "Phone", "browser": "Safari", "os": "iOS"}
TABLET = {"name": "Tablet", "browser": "Chrome", "os": "Android"}


@pytest.fixture
def user(db_session):
    return auth_service.register_user("clerk@example.com", PASSWORD, "Counter", "Clerk")


class TestUsers:
    def test_register_hashes_password(self, user):
        assert user.password_hash != PASSWORD
        assert user.password_hash.startswith("$2")
        assert auth_service.verify_password(PASSWORD, user.password_hash)
        assert not auth_service.verify_password("wrong", user.password_hash)
        assert user.role == "user"
        assert user.status == "active"

    def test_email_is_normalized_and_unique(self, user):
        with pytest.raises(ConflictError):
            auth_service.register_user("  CLERK@example.com ", PASSWORD)

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigits!!", "NoSpecial11"])
    def test_weak_passwords(self, db_session, password):
        with pytest.raises(PasswordValidationError):
            auth_service.register_user("weak@example.com", password)

    def test_invalid_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.register_user("x@example.com", PASSWORD, role="owner")

    def test_sub_admin_and_role_listing(self, user):
        sub = auth_service.create_sub_admin("sub@example.com", PASSWORD, "Sub", "Admin")
        assert sub.role == "sub-admin"
        assert [u.id for u in auth_service.get_users_by_role("sub-admin")] == [sub.id]
        assert [u.id for u in auth_service.get_users_by_role("user")] == [user.id]

    def test_update_email(self, user):
        auth_service.register_user("other@example.com", PASSWORD)
        with pytest.raises(ConflictError):
            auth_service.update_user_email(user.id, "other@example.com")
        assert auth_service.update_user_email(user.id, "new@example.com").email == "new@example.com"

    def test_ensure_admin_is_idempotent(self, db_session):
        admin, created = auth_service.ensure_admin_user("admin@example.com", "Admin123!")
        assert created and admin.role == "admin"
        again, created = auth_service.ensure_admin_user("admin@example.com", "Admin123!")
        assert not created and again.id == admin.id

    def test_last_admin_cannot_be_deleted(self, db_session):
        admin, _ = auth_service.ensure_admin_user("admin@example.com", "Admin123!")
        with pytest.raises(ConflictError):
            auth_service.delete_user(admin.id)

    def test_delete_user_removes_devices(self, user):
        session_service.login(user.email, PASSWORD, LAPTOP)
        auth_service.delete_user(user.id)
        assert auth_service.get_user_by_email(user.email) is None
        assert session_service.get_user_devices(user.id) == []


class TestLogin:
    def test_login_issues_working_token(self, user):
        result = session_service.login(user.email, PASSWORD, LAPTOP)
        context = session_service.validate_token(result.token)
        assert context.user.id == user.id
        assert context.device.id == result.device.id
        assert result.device.name == "Laptop"

    def test_wrong_password(self, user):
        with pytest.raises(AuthenticationError):
            session_service.login(user.email, "Wrong000!", LAPTOP)

    def test_unknown_email(self, db_session):
        with pytest.raises(AuthenticationError):
            session_service.login("ghost@example.com", PASSWORD, LAPTOP)

    def test_inactive_user_is_rejected(self, user):
        auth_service.update_user_status(user.id, "inactive")
        with pytest.raises(AuthenticationError) as exc:
            session_service.login(user.email, PASSWORD, LAPTOP)
        assert "deactivated" in str(exc.value)

    def test_deactivation_revokes_tokens(self, user):
        result = session_service.login(user.email, PASSWORD, LAPTOP)
        auth_service.update_user_status(user.id, "inactive")
        assert session_service.validate_token(result.token) is None

    def test_third_device_is_refused(self, user):
        session_service.login(user.email, PASSWORD, LAPTOP)
        session_service.login(user.email, PASSWORD, PHONE)

        with pytest.raises(DeviceLimitError) as exc:
            session_service.login(user.email, PASSWORD, TABLET)

        assert exc.value.limit == 2
        assert sorted(d["name"] for d in exc.value.devices) == ["Laptop", "Phone"]
        assert len(session_service.get_user_devices(user.id)) == 2

    def test_known_device_can_sign_in_again(self, user):
        laptop = session_service.login(user.email, PASSWORD, LAPTOP)
        session_service.login(user.email, PASSWORD, PHONE)

        again = session_service.login(user.email, PASSWORD, LAPTOP, device_token=laptop.device.id)
        assert again.device.id == laptop.device.id
        assert session_service.validate_token(laptop.token) is None
        assert session_service.validate_token(again.token) is not None

    def test_removing_a_device_frees_a_slot(self, user):
        laptop = session_service.login(user.email, PASSWORD, LAPTOP)
        session_service.login(user.email, PASSWORD, PHONE)

        session_service.remove_user_device(user.id, laptop.device.id)
        tablet = session_service.login(user.email, PASSWORD, TABLET)
        assert tablet.device.name == "Tablet"

    def test_device_limit_follows_config(self, app, user):
        app.config["MAX_DEVICES_PER_USER"] = 1
        try:
            session_service.login(user.email, PASSWORD, LAPTOP)
            with pytest.raises(DeviceLimitError):
                session_service.login(user.email, PASSWORD, PHONE)
        finally:
            app.config["MAX_DEVICES_PER_USER"] = 2

    def test_logout_revokes_token_keeps_device(self, user):
        result = session_service.login(user.email, PASSWORD, LAPTOP)
        assert session_service.logout(result.token) is True
        assert session_service.validate_token(result.token) is None
        assert len(session_service.get_user_devices(user.id)) == 1
        assert session_service.logout(result.token) is False

    def test_garbage_token(self, db_session):
        assert session_service.validate_token("not-a-token") is None
        assert session_service.validate_token("") is None
