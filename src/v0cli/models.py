"""Data models for the v0 CLI."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

import httpx


@dataclass(frozen=True)
class SessionCredential:
    """A single session cookie recovered for the target service."""

    name: str
    value: str
    domain: str
    path: str = "/"
    max_age_seconds: Optional[int] = None
    http_only: bool = False
    secure: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.max_age_seconds,
            "httpOnly": self.http_only,
            "secure": self.secure,
        }

    @classmethod
    def from_dict(cls, data: dict, default_domain: str = "") -> "SessionCredential":
        expires = data.get("expires")
        return cls(
            name=str(data["name"]),
            value=str(data.get("value", "")),
            domain=data.get("domain") or default_domain,
            path=data.get("path") or "/",
            max_age_seconds=int(expires) if isinstance(expires, (int, float)) and expires >= 0 else None,
            http_only=bool(data.get("httpOnly", False)),
            secure=bool(data.get("secure", False)),
        )


class CookieJar:
    """Cookies for one target domain, de-duplicated by name.

    Adding a cookie whose name is already present replaces the earlier one.
    """

    def __init__(self, cookies: Iterable[SessionCredential] = ()) -> None:
        self._cookies: dict[str, SessionCredential] = {}
        for cookie in cookies:
            self.add(cookie)

    def add(self, cookie: SessionCredential) -> None:
        self._cookies[cookie.name] = cookie

    def update(self, cookies: Iterable[SessionCredential]) -> None:
        for cookie in cookies:
            self.add(cookie)

    def get(self, name: str) -> Optional[SessionCredential]:
        return self._cookies.get(name)

    def names(self) -> set[str]:
        return set(self._cookies)

    def copy(self) -> "CookieJar":
        return CookieJar(self._cookies.values())

    def to_httpx(self) -> httpx.Cookies:
        """Build an httpx cookie container from the jar."""
        cookies = httpx.Cookies()
        for cookie in self:
            cookies.set(cookie.name, cookie.value, domain=cookie.domain, path=cookie.path)
        return cookies

    def __iter__(self) -> Iterator[SessionCredential]:
        return iter(list(self._cookies.values()))

    def __len__(self) -> int:
        return len(self._cookies)

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieJar):
            return NotImplemented
        return self._cookies == other._cookies

    def __repr__(self) -> str:
        return f"CookieJar({sorted(self._cookies)})"


@dataclass
class AuthRecord:
    """Marker recording when a session was established and where its cookies live."""

    created_at_ms: int
    cookies_file: str


class OutcomeKind(Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeOutcome:
    """Tagged result of one extraction strategy attempt."""

    kind: OutcomeKind
    jar: Optional[CookieJar] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, jar: CookieJar) -> "ProbeOutcome":
        return cls(OutcomeKind.SUCCESS, jar=jar)

    @classmethod
    def not_found(cls) -> "ProbeOutcome":
        return cls(OutcomeKind.NOT_FOUND)

    @classmethod
    def error(cls, reason: str) -> "ProbeOutcome":
        return cls(OutcomeKind.ERROR, reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


@dataclass
class AcquisitionAttempt:
    """One strategy run during an acquisition cycle."""

    strategy_name: str
    started_at: float
    outcome: ProbeOutcome


class AcquisitionState(Enum):
    """States of a session acquisition cycle."""

    IDLE = "idle"
    CHECKING_EXISTING = "checking_existing"
    OPENING_EXTERNAL_LOGIN = "opening_external_login"
    POLLING_EXTRACTION = "polling_extraction"
    MANUAL_CONFIRM_PENDING = "manual_confirm_pending"
    MANUAL_COOKIE_INPUT_PENDING = "manual_cookie_input_pending"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (AcquisitionState.SUCCEEDED, AcquisitionState.FAILED, AcquisitionState.CANCELLED)


@dataclass
class AcquisitionResult:
    """Outcome of a finished acquisition cycle."""

    state: AcquisitionState
    message: Optional[str] = None
    attempts: list[AcquisitionAttempt] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is AcquisitionState.SUCCEEDED


@dataclass
class Config:
    """User configuration for the CLI."""

    base_url: str
    browser: str
    login_timeout: int
    check_interval: int
    connect_timeout: float
    read_timeout: float
    forget_stale_sessions: bool = False
