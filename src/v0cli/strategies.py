"""
Extraction strategies for recovering v0.dev session cookies.

Each strategy answers one question: "can I get a usable cookie jar right
now?" Absence is a normal answer (NOT_FOUND); unexpected network failures
come back as ERROR outcomes and never as exceptions.

Order used by the login flow:
1. DirectApiProbe (current-user endpoint)
2. BrowserProfileProbe, one per browser family (presence check + delegate)
3. AlternateEndpointApiProbe (home page, app page, session endpoint)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from v0cli.browser import BROWSER_FAMILIES, find_profile_dir
from v0cli.cookies import has_auth_cookies, parse_set_cookie, service_domain
from v0cli.models import CookieJar, ProbeOutcome, SessionCredential

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/json;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

USER_ENDPOINT = "/api/user"
ALTERNATE_ENDPOINTS = ("/", "/chat", "/api/auth/session")


def default_client_factory(cookies: httpx.Cookies, timeout: httpx.Timeout) -> httpx.Client:
    return httpx.Client(
        headers=BROWSER_HEADERS,
        cookies=cookies,
        timeout=timeout,
        follow_redirects=True,
    )


@dataclass
class ProbeContext:
    """Everything a strategy needs for one attempt.

    Outcomes are memoized per round (see begin_round/run_once), so a
    strategy that several probes delegate to hits the network once per round.
    should_stop is polled between requests; the controller wires it to the
    cancel flag and the login deadline.
    """

    base_url: str
    seed: CookieJar = field(default_factory=CookieJar)
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    client_factory: Callable[[httpx.Cookies, httpx.Timeout], httpx.Client] = default_client_factory
    should_stop: Callable[[], bool] = field(default=lambda: False, repr=False, compare=False)
    _round: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    @property
    def domain(self) -> str:
        return service_domain(self.base_url)

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.read_timeout, connect=self.connect_timeout)

    def url(self, path: str) -> str:
        return self.base_url.rstrip("/") + path

    def begin_round(self) -> None:
        self._round.clear()

    def run_once(self, strategy: "ExtractionStrategy") -> ProbeOutcome:
        """Attempt strategy, reusing its outcome if it already ran this round."""
        key = id(strategy)
        if key not in self._round:
            self._round[key] = strategy.attempt(self)
        return self._round[key]


class ExtractionStrategy(ABC):
    """Abstract base class for session cookie extraction strategies."""

    name: str = "strategy"

    @abstractmethod
    def attempt(self, context: ProbeContext) -> ProbeOutcome:
        """Try once to obtain a cookie jar containing session cookies."""


@dataclass
class ProbeResponse:
    """What one GET produced.

    jar is the seed plus everything the server set; fresh holds only the
    cookies this response chain set or changed.
    """

    status_code: int
    jar: CookieJar
    fresh: CookieJar
    user_confirmed: bool = False

    @property
    def rejected(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def authenticated(self) -> bool:
        """True when this attempt itself shows a live session."""
        if self.rejected:
            return False
        if has_auth_cookies(self.fresh):
            return True
        return self.user_confirmed and has_auth_cookies(self.jar)


def _credential_from_jar_cookie(cookie, default_domain: str) -> SessionCredential:
    return SessionCredential(
        name=cookie.name,
        value=cookie.value or "",
        domain=cookie.domain.lstrip(".") if cookie.domain else default_domain,
        path=cookie.path or "/",
        secure=bool(cookie.secure),
        http_only=cookie.has_nonstandard_attr("HttpOnly"),
    )


def _body_has_user(response: httpx.Response) -> bool:
    if not response.is_success:
        return False
    try:
        data = response.json()
    except ValueError:
        return False
    return isinstance(data, dict) and bool(data.get("user"))


def probe_url(context: ProbeContext, url: str) -> ProbeResponse:
    """GET url with an isolated client and collect every cookie seen along the way.

    The per-attempt client starts from a copy of the seed jar, so nothing the
    server sets leaks into the shared session state. Raises httpx.HTTPError.
    """
    domain = context.domain
    with context.client_factory(context.seed.to_httpx(), context.timeout) as client:
        response = client.get(url)

        fresh = CookieJar()
        for jar_cookie in client.cookies.jar:
            seeded = context.seed.get(jar_cookie.name)
            if seeded is not None and seeded.value == jar_cookie.value:
                continue
            fresh.add(_credential_from_jar_cookie(jar_cookie, domain))
        for hop in [*response.history, response]:
            for header in hop.headers.get_list("set-cookie"):
                fresh.update(parse_set_cookie(header, domain))

    merged = context.seed.copy()
    merged.update(fresh)
    result = ProbeResponse(
        status_code=response.status_code,
        jar=merged,
        fresh=fresh,
        user_confirmed=_body_has_user(response),
    )
    logger.debug(f"GET {url} -> {response.status_code}, {len(fresh)} new cookies, {len(merged)} total")
    if result.user_confirmed:
        logger.info(f"{url} reports an authenticated user")
    return result


class DirectApiProbe(ExtractionStrategy):
    """Ask the current-user endpoint and look for session cookies in the reply."""

    name = "direct-api"

    def __init__(self, endpoint: str = USER_ENDPOINT) -> None:
        self.endpoint = endpoint

    def attempt(self, context: ProbeContext) -> ProbeOutcome:
        url = context.url(self.endpoint)
        try:
            response = probe_url(context, url)
        except httpx.HTTPError as e:
            logger.warning(f"{self.name}: request to {url} failed: {e}")
            return ProbeOutcome.error(str(e))

        if response.authenticated:
            logger.info(f"{self.name}: found auth cookies at {url}")
            return ProbeOutcome.success(response.jar)
        return ProbeOutcome.not_found()


class AlternateEndpointApiProbe(ExtractionStrategy):
    """Walk the fallback endpoints and stop at the first one yielding auth cookies."""

    name = "alternate-api"

    def __init__(self, endpoints: tuple[str, ...] = ALTERNATE_ENDPOINTS) -> None:
        self.endpoints = endpoints

    def attempt(self, context: ProbeContext) -> ProbeOutcome:
        last_error: Optional[str] = None

        for endpoint in self.endpoints:
            if context.should_stop():
                logger.debug(f"{self.name}: stopping before {endpoint}")
                break

            url = context.url(endpoint)
            try:
                response = probe_url(context, url)
            except httpx.HTTPError as e:
                logger.debug(f"{self.name}: request to {url} failed: {e}")
                last_error = str(e)
                continue

            if response.authenticated:
                logger.info(f"{self.name}: found auth cookies at {url}")
                return ProbeOutcome.success(response.jar)

        if last_error is not None:
            return ProbeOutcome.error(last_error)
        return ProbeOutcome.not_found()


class BrowserProfileProbe(ExtractionStrategy):
    """Detect a browser's profile directory, then fall back to the API probe.

    The browser's own cookie database is never read; finding the profile only
    tells us the user plausibly logged in with that browser. The delegate
    runs at most once per round however many profiles are present.
    """

    def __init__(
        self,
        browser: str,
        delegate: ExtractionStrategy | None = None,
        os_name: str | None = None,
    ) -> None:
        self.browser = browser
        self.name = f"browser-{browser.lower()}"
        self.delegate = delegate or DirectApiProbe()
        self.os_name = os_name

    def attempt(self, context: ProbeContext) -> ProbeOutcome:
        profile = find_profile_dir(self.browser, os_name=self.os_name)
        if profile is None:
            return ProbeOutcome.not_found()

        logger.debug(f"{self.name}: profile found at {profile}, probing API")
        return context.run_once(self.delegate)


def default_strategies(os_name: str | None = None) -> list[ExtractionStrategy]:
    """Strategies in priority order."""
    direct = DirectApiProbe()
    return [
        direct,
        *(BrowserProfileProbe(browser, delegate=direct, os_name=os_name) for browser in BROWSER_FAMILIES),
        AlternateEndpointApiProbe(),
    ]
