"""Cookie helpers: auth-cookie detection, Set-Cookie parsing and manual import."""

import json
import logging
import threading
import time
from http.cookies import CookieError, SimpleCookie
from typing import Iterable, Optional
from urllib.parse import urlparse

from v0cli.models import CookieJar, SessionCredential

logger = logging.getLogger(__name__)

# Cookie names v0.dev (NextAuth) uses for a signed-in session
AUTH_COOKIE_NAMES = frozenset(
    {
        "next-auth.session-token",
        "__Secure-next-auth.session-token",
        "next-auth.csrf-token",
        "__Host-next-auth.csrf-token",
        "session",
        "auth_token",
    }
)
AUTH_NAME_MARKERS = ("auth", "token", "session")

# Columns in a row copied from the browser devtools cookie table
_DEVTOOLS_HEADER = ("name", "value")
_CHECKED = {"✓", "true", "yes", "1"}


def service_domain(base_url: str) -> str:
    """Host name of the target service, used as the default cookie domain."""
    return urlparse(base_url).hostname or base_url


def is_auth_cookie_name(name: str) -> bool:
    if name in AUTH_COOKIE_NAMES:
        return True
    return any(marker in name for marker in AUTH_NAME_MARKERS)


def has_auth_cookies(cookies: Iterable[SessionCredential]) -> bool:
    """Heuristic check for at least one cookie that looks like a session credential."""
    return any(is_auth_cookie_name(cookie.name) for cookie in cookies)


def parse_set_cookie(header: str, default_domain: str) -> list[SessionCredential]:
    """Parse one Set-Cookie header value into credentials."""
    parsed = SimpleCookie()
    try:
        parsed.load(header)
    except CookieError as e:
        logger.debug(f"Skipping malformed Set-Cookie header: {e}")
        return []

    credentials = []
    for name, morsel in parsed.items():
        max_age = morsel["max-age"]
        credentials.append(
            SessionCredential(
                name=name,
                value=morsel.value,
                domain=(morsel["domain"] or default_domain).lstrip("."),
                path=morsel["path"] or "/",
                max_age_seconds=int(max_age) if str(max_age).lstrip("-").isdigit() else None,
                http_only=bool(morsel["httponly"]),
                secure=bool(morsel["secure"]),
            )
        )
    return credentials


def _from_json_object(entry: dict, default_domain: str) -> Optional[SessionCredential]:
    name = entry.get("name")
    if not name:
        return None

    expires = entry.get("expires", entry.get("maxAge"))
    # Cookie extensions export an absolute expirationDate in epoch seconds
    expiration_date = entry.get("expirationDate")
    if expires is None and isinstance(expiration_date, (int, float)):
        expires = max(0, int(expiration_date - time.time()))
    return SessionCredential(
        name=str(name),
        value=str(entry.get("value", "")),
        domain=entry.get("domain") or default_domain,
        path=entry.get("path") or "/",
        max_age_seconds=int(expires) if isinstance(expires, (int, float)) and expires >= 0 else None,
        http_only=bool(entry.get("httpOnly", False)),
        secure=bool(entry.get("secure", False)),
    )


def _parse_json_array(text: str, default_domain: str) -> CookieJar:
    try:
        data = json.loads(text)
    except ValueError:
        return CookieJar()
    if not isinstance(data, list):
        return CookieJar()

    jar = CookieJar()
    for entry in data:
        if isinstance(entry, dict):
            cookie = _from_json_object(entry, default_domain)
            if cookie:
                jar.add(cookie)
    return jar


def _parse_json_object(text: str, default_domain: str) -> CookieJar:
    try:
        data = json.loads(text)
    except ValueError:
        return CookieJar()
    if not isinstance(data, dict):
        return CookieJar()

    # Playwright-style storage state: {"cookies": [...], "origins": [...]}
    if isinstance(data.get("cookies"), list):
        return _parse_json_array(json.dumps(data["cookies"]), default_domain)

    cookie = _from_json_object(data, default_domain)
    return CookieJar([cookie]) if cookie else CookieJar()


def _parse_tab_delimited(text: str, default_domain: str) -> CookieJar:
    jar = CookieJar()
    for line in text.splitlines():
        if "\t" not in line:
            continue
        columns = [column.strip() for column in line.split("\t")]
        name, value = columns[0], columns[1]
        if not name or (name.lower(), value.lower()) == _DEVTOOLS_HEADER:
            continue

        def column(index: int) -> str:
            return columns[index] if index < len(columns) else ""

        jar.add(
            SessionCredential(
                name=name,
                value=value,
                domain=column(2) or default_domain,
                path=column(3) or "/",
                http_only=column(6).lower() in _CHECKED,
                secure=column(7).lower() in _CHECKED,
            )
        )
    return jar


def _parse_name_value_lines(text: str, default_domain: str) -> CookieJar:
    jar = CookieJar()
    for line in text.splitlines():
        for pair in line.split(";"):
            name, sep, value = pair.strip().partition("=")
            name = name.strip()
            if not sep or not name:
                continue
            jar.add(SessionCredential(name=name, value=value.strip(), domain=default_domain, path="/"))
    return jar


_MANUAL_PARSERS = (
    _parse_json_array,
    _parse_json_object,
    _parse_tab_delimited,
    _parse_name_value_lines,
)


def parse_manual_cookies(text: str, default_domain: str) -> CookieJar:
    """Parse pasted cookie text.

    Formats are tried in order: JSON array, JSON object, tab-delimited
    devtools rows, then name=value lines. The first non-empty result wins.
    An empty jar means the input could not be parsed.
    """
    text = (text or "").strip()
    if not text:
        return CookieJar()

    for parser in _MANUAL_PARSERS:
        jar = parser(text, default_domain)
        if len(jar) > 0:
            logger.debug(f"Parsed {len(jar)} cookies with {parser.__name__}")
            return jar
    return CookieJar()


class CookieJarHandle:
    """The active in-memory session cookies, shared between the login flow and HTTP callers."""

    def __init__(self, jar: CookieJar | None = None) -> None:
        self._lock = threading.Lock()
        self._jar = jar.copy() if jar else CookieJar()

    def replace(self, jar: CookieJar) -> None:
        with self._lock:
            self._jar = jar.copy()

    def snapshot(self) -> CookieJar:
        with self._lock:
            return self._jar.copy()

    def clear(self) -> None:
        with self._lock:
            self._jar = CookieJar()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jar)
