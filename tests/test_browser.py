"""Tests for browser launching and profile detection."""

import webbrowser
from unittest.mock import MagicMock, patch

import pytest

from v0cli.browser import (
    FALLBACK_COMMANDS,
    current_platform,
    detect_browsers,
    find_profile_dir,
    has_any_known_browser,
    open_login_page,
)
from v0cli.exceptions import NoBrowserAvailableError

LOGIN_URL = "https://v0.dev/chat"


class TestFindProfileDir:
    """Tests for find_profile_dir()."""

    def test_missing_profile(self, tmp_path):
        assert find_profile_dir("Chrome", os_name="linux", home=tmp_path) is None

    def test_existing_profile(self, tmp_path):
        profile = tmp_path / ".mozilla" / "firefox"
        profile.mkdir(parents=True)
        assert find_profile_dir("Firefox", os_name="linux", home=tmp_path) == profile

    def test_second_candidate(self, tmp_path):
        profile = tmp_path / "snap" / "chromium" / "common" / "chromium"
        profile.mkdir(parents=True)
        assert find_profile_dir("Chromium", os_name="linux", home=tmp_path) == profile

    def test_file_is_not_a_profile(self, tmp_path):
        (tmp_path / ".config").mkdir()
        (tmp_path / ".config" / "google-chrome").write_text("")
        assert find_profile_dir("Chrome", os_name="linux", home=tmp_path) is None

    def test_unknown_browser(self, tmp_path):
        assert find_profile_dir("Netscape", os_name="linux", home=tmp_path) is None

    def test_windows_environment_paths(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOCALAPPDATA", str(tmp_path / "Local"))
        profile = tmp_path / "Local" / "Google" / "Chrome" / "User Data"
        profile.mkdir(parents=True)
        assert find_profile_dir("Chrome", os_name="win32", home=tmp_path) == profile

    def test_windows_missing_environment_variable(self, tmp_path, monkeypatch):
        monkeypatch.delenv("APPDATA", raising=False)
        assert find_profile_dir("Firefox", os_name="win32", home=tmp_path) is None


class TestDetectBrowsers:
    """Tests for detect_browsers() and has_any_known_browser()."""

    def test_none_installed(self, tmp_path):
        assert detect_browsers(os_name="linux", home=tmp_path) == []
        assert has_any_known_browser(os_name="linux", home=tmp_path) is False

    def test_lists_installed_families_in_order(self, tmp_path):
        (tmp_path / ".mozilla" / "firefox").mkdir(parents=True)
        (tmp_path / ".config" / "google-chrome").mkdir(parents=True)

        assert detect_browsers(os_name="linux", home=tmp_path) == ["Chrome", "Firefox"]
        assert has_any_known_browser(os_name="linux", home=tmp_path) is True

    def test_safari_only_on_macos(self, tmp_path):
        (tmp_path / "Library" / "Safari").mkdir(parents=True)
        assert detect_browsers(os_name="darwin", home=tmp_path) == ["Safari"]
        assert detect_browsers(os_name="linux", home=tmp_path) == []


class TestCurrentPlatform:
    """Tests for current_platform()."""

    @pytest.mark.parametrize(
        "platform,expected",
        [("win32", "win32"), ("cygwin", "linux"), ("darwin", "darwin"), ("linux", "linux"), ("freebsd13", "linux")],
    )
    def test_normalizes(self, platform, expected):
        with patch("v0cli.browser.sys.platform", platform):
            assert current_platform() == expected


class TestOpenLoginPage:
    """Tests for open_login_page()."""

    def test_default_browser(self):
        spawn = MagicMock()
        with patch("v0cli.browser.webbrowser.open", return_value=True) as wb_open:
            opener = open_login_page(LOGIN_URL, os_name="linux", spawn=spawn)

        assert opener == "default"
        wb_open.assert_called_once_with(LOGIN_URL)
        spawn.assert_not_called()

    def test_falls_back_to_platform_commands(self):
        spawn = MagicMock()
        with patch("v0cli.browser.webbrowser.open", return_value=False):
            opener = open_login_page(LOGIN_URL, os_name="linux", spawn=spawn)

        assert opener == "xdg-open"
        spawn.assert_called_once_with(["xdg-open", LOGIN_URL])

    def test_webbrowser_error_falls_back(self):
        spawn = MagicMock()
        with patch("v0cli.browser.webbrowser.open", side_effect=webbrowser.Error("no runnable browser")):
            assert open_login_page(LOGIN_URL, os_name="darwin", spawn=spawn) == "open"

    def test_skips_commands_that_fail(self):
        def spawn(command):
            if command[0] in ("xdg-open", "google-chrome"):
                raise FileNotFoundError(command[0])

        with patch("v0cli.browser.webbrowser.open", return_value=False):
            assert open_login_page(LOGIN_URL, os_name="linux", spawn=spawn) == "firefox"

    def test_tries_every_fallback_in_order(self):
        tried = []

        def spawn(command):
            tried.append(command[0])
            raise FileNotFoundError(command[0])

        with patch("v0cli.browser.webbrowser.open", return_value=False):
            with pytest.raises(NoBrowserAvailableError):
                open_login_page(LOGIN_URL, os_name="linux", spawn=spawn)

        assert tried == [command[0] for command in FALLBACK_COMMANDS["linux"]]

    def test_windows_commands_get_url_appended(self):
        spawn = MagicMock()
        with patch("v0cli.browser.webbrowser.open", return_value=False):
            open_login_page(LOGIN_URL, os_name="win32", spawn=spawn)

        spawn.assert_called_once_with(["rundll32", "url.dll,FileProtocolHandler", LOGIN_URL])

    def test_configured_browser_is_tried_first(self):
        spawn = MagicMock()
        with patch("v0cli.browser.webbrowser.open") as wb_open:
            opener = open_login_page(LOGIN_URL, browser="brave-browser", os_name="linux", spawn=spawn)

        assert opener == "brave-browser"
        spawn.assert_called_once_with(["brave-browser", LOGIN_URL])
        wb_open.assert_not_called()

    def test_configured_browser_missing_uses_fallbacks(self):
        tried = []

        def spawn(command):
            tried.append(command[0])
            if command[0] == "brave-browser":
                raise FileNotFoundError(command[0])

        assert open_login_page(LOGIN_URL, browser="brave-browser", os_name="linux", spawn=spawn) == "xdg-open"
        assert tried == ["brave-browser", "xdg-open"]

    def test_unknown_platform_without_default_browser(self):
        with patch("v0cli.browser.webbrowser.open", return_value=False):
            with pytest.raises(NoBrowserAvailableError):
                open_login_page(LOGIN_URL, os_name="plan9", spawn=MagicMock())
