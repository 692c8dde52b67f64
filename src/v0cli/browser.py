"""Open the login page in an external browser and locate installed browser profiles."""

import logging
import os
import subprocess
import sys
import webbrowser
from pathlib import Path
from typing import Callable, Optional

from v0cli.exceptions import NoBrowserAvailableError

logger = logging.getLogger(__name__)

# Relative to the home directory unless noted; %VAR% entries expand from the environment
BROWSER_PROFILE_PATHS: dict[str, dict[str, list[str]]] = {
    "linux": {
        "Chrome": [".config/google-chrome"],
        "Chromium": [".config/chromium", "snap/chromium/common/chromium"],
        "Edge": [".config/microsoft-edge"],
        "Brave": [".config/BraveSoftware/Brave-Browser"],
        "Firefox": [".mozilla/firefox", "snap/firefox/common/.mozilla/firefox"],
    },
    "darwin": {
        "Chrome": ["Library/Application Support/Google/Chrome"],
        "Chromium": ["Library/Application Support/Chromium"],
        "Edge": ["Library/Application Support/Microsoft Edge"],
        "Brave": ["Library/Application Support/BraveSoftware/Brave-Browser"],
        "Firefox": ["Library/Application Support/Firefox/Profiles"],
        "Safari": ["Library/Safari"],
    },
    "win32": {
        "Chrome": ["%LOCALAPPDATA%/Google/Chrome/User Data"],
        "Chromium": ["%LOCALAPPDATA%/Chromium/User Data"],
        "Edge": ["%LOCALAPPDATA%/Microsoft/Edge/User Data"],
        "Brave": ["%LOCALAPPDATA%/BraveSoftware/Brave-Browser/User Data"],
        "Firefox": ["%APPDATA%/Mozilla/Firefox/Profiles"],
    },
}

BROWSER_FAMILIES = ("Chrome", "Chromium", "Edge", "Brave", "Firefox", "Safari")

# Tried in order when the webbrowser module can't open the page
FALLBACK_COMMANDS: dict[str, list[list[str]]] = {
    "win32": [["rundll32", "url.dll,FileProtocolHandler"], ["cmd", "/c", "start", ""]],
    "darwin": [["open"]],
    "linux": [["xdg-open"], ["google-chrome"], ["firefox"], ["mozilla"], ["opera"]],
}


def current_platform() -> str:
    """Normalize sys.platform to a key of the browser tables."""
    if sys.platform.startswith("win"):
        return "win32"
    if sys.platform == "darwin":
        return "darwin"
    return "linux"


def _resolve(candidate: str, home: Path) -> Optional[Path]:
    if candidate.startswith("%"):
        var, _, rest = candidate[1:].partition("%")
        base = os.environ.get(var)
        if not base:
            return None
        return Path(base) / rest.lstrip("/")
    return home / candidate


def find_profile_dir(browser: str, os_name: str | None = None, home: Path | None = None) -> Optional[Path]:
    """Return the first existing profile directory for a browser family."""
    os_name = os_name or current_platform()
    home = home or Path.home()

    for candidate in BROWSER_PROFILE_PATHS.get(os_name, {}).get(browser, []):
        path = _resolve(candidate, home)
        if path is not None and path.is_dir():
            return path
    return None


def detect_browsers(os_name: str | None = None, home: Path | None = None) -> list[str]:
    """Names of the browser families with a profile directory on this machine."""
    return [
        browser
        for browser in BROWSER_FAMILIES
        if find_profile_dir(browser, os_name=os_name, home=home) is not None
    ]


def has_any_known_browser(os_name: str | None = None, home: Path | None = None) -> bool:
    return bool(detect_browsers(os_name=os_name, home=home))


def _spawn(command: list[str]) -> None:
    subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)


def open_login_page(
    url: str,
    browser: str = "default",
    os_name: str | None = None,
    spawn: Callable[[list[str]], None] = _spawn,
) -> str:
    """Open url in an external browser.

    Tries the webbrowser module (or the configured browser command), then the
    OS-specific command list. Returns a description of the opener that worked.
    """
    os_name = os_name or current_platform()
    logger.info(f"Opening browser to {url}")

    if browser == "default":
        try:
            if webbrowser.open(url):
                logger.info("Browser opened with the system default handler")
                return "default"
        except webbrowser.Error as e:
            logger.warning(f"Default browser handler failed: {e}")
        logger.warning("Default browser not available, trying alternative commands")
        commands = list(FALLBACK_COMMANDS.get(os_name, []))
    else:
        commands = [[browser]] + list(FALLBACK_COMMANDS.get(os_name, []))

    for command in commands:
        try:
            spawn(command + [url])
        except OSError as e:
            logger.debug(f"Browser command {command[0]} failed: {e}")
            continue
        logger.info(f"Browser opened with {command[0]}")
        return command[0]

    logger.error(f"No browser could be opened on platform {os_name}")
    raise NoBrowserAvailableError()
