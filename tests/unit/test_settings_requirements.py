import pytest

from apn_client.config.settings import Settings, require_portal_credentials


def test_require_portal_credentials_raises_when_missing():
    with pytest.raises(RuntimeError, match="APN_USERNAME, APN_PASSWORD"):
        require_portal_credentials(None, None)


def test_require_portal_credentials_names_only_the_missing_one():
    with pytest.raises(RuntimeError) as excinfo:
        require_portal_credentials("partner@example.com", "")
    assert "APN_PASSWORD" in str(excinfo.value)
    assert "APN_USERNAME" not in str(excinfo.value)


def test_require_portal_credentials_returns_pair():
    assert require_portal_credentials("u", "p") == ("u", "p")


def test_settings_reject_unknown_browser():
    with pytest.raises(ValueError):
        Settings(APN_BROWSER="netscape")
