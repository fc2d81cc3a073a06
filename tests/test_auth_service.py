from conftest import SECRET
from services.auth_service import AuthService


def test_login_success_opens_session():
    auth = AuthService(secret=SECRET)
    result = auth.login(SECRET, "Uri")
    assert result.authorized
    assert auth.current_user == "Uri"
    assert auth.is_logged_in


def test_wrong_password_is_rejected_without_raising():
    auth = AuthService(secret=SECRET)
    result = auth.login("nope", "Uri")
    assert not result.authorized
    assert result.message
    assert auth.current_user is None


def test_unknown_operator_is_rejected():
    auth = AuthService(secret=SECRET)
    assert not auth.login(SECRET, "Mallory").authorized


def test_missing_secret_rejects_everything(monkeypatch):
    monkeypatch.delenv("WAREHOUSE_MASTER_PASSWORD")
    auth = AuthService()
    result = auth.login("", "Uri")
    assert not result.authorized
    assert "系統密碼" in result.message


def test_secret_is_loaded_from_environment_once(monkeypatch):
    auth = AuthService()
    monkeypatch.setenv("WAREHOUSE_MASTER_PASSWORD", "rotated")
    assert auth.login(SECRET, "Nick").authorized
    assert not AuthService().login(SECRET, "Nick").authorized


def test_logout_clears_session():
    auth = AuthService(secret=SECRET)
    auth.login(SECRET, "Jason")
    auth.logout()
    assert auth.current_user is None
    assert not auth.is_idle_expired()


def test_idle_expiry():
    auth = AuthService(secret=SECRET, idle_limit=300)
    auth.login(SECRET, "Barry")
    auth.touch(now=1000.0)
    assert not auth.is_idle_expired(now=1299.0)
    assert auth.is_idle_expired(now=1300.0)
    auth.touch(now=1300.0)
    assert not auth.is_idle_expired(now=1301.0)
