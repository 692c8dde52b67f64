"""Shared pytest fixtures for the v0-cli test suite."""

from typing import Optional

import pytest

from v0cli.interaction import UserInteractionPort
from v0cli.models import Config, CookieJar, ProbeOutcome, SessionCredential
from v0cli.storage import AuthStateStore, Storage
from v0cli.strategies import ExtractionStrategy, ProbeContext


class FakeInteraction(UserInteractionPort):
    """Scripted stand-in for a front end."""

    def __init__(
        self,
        confirm_answer: bool = True,
        manual_input: Optional[str] = None,
        cancel_after_progress: Optional[int] = None,
    ) -> None:
        self.confirm_answer = confirm_answer
        self.manual_input = manual_input
        self.cancel_after_progress = cancel_after_progress
        self.progress: list[tuple[int, str]] = []
        self.prompts: list[str] = []
        self.manual_requests: list[str] = []
        self._cancelled = False

    def report_progress(self, percent: int, message: str) -> None:
        self.progress.append((percent, message))
        if self.cancel_after_progress is not None and len(self.progress) >= self.cancel_after_progress:
            self._cancelled = True

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.confirm_answer

    def request_manual_input(self, instructions: str) -> Optional[str]:
        self.manual_requests.append(instructions)
        return self.manual_input

    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ScriptedStrategy(ExtractionStrategy):
    """Strategy that returns queued outcomes, then NOT_FOUND forever."""

    def __init__(self, name: str, outcomes: list[ProbeOutcome] | None = None) -> None:
        self.name = name
        self.outcomes = list(outcomes or [])
        self.calls = 0

    def attempt(self, context: ProbeContext) -> ProbeOutcome:
        self.calls += 1
        if self.outcomes:
            return self.outcomes.pop(0)
        return ProbeOutcome.not_found()


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the per-user directory at a temporary path for every test."""
    home = tmp_path / "v0home"
    monkeypatch.setenv("V0CLI_HOME", str(home))
    return home


@pytest.fixture
def session_cookie() -> SessionCredential:
    return SessionCredential(
        name="__Secure-next-auth.session-token",
        value="eyJhbGciOiJkaXIiLCJlbmMiOiJBMjU2R0NNIn0..abc",
        domain="v0.dev",
        path="/",
        max_age_seconds=2592000,
        http_only=True,
        secure=True,
    )


@pytest.fixture
def sample_jar(session_cookie) -> CookieJar:
    """A jar holding a session token and an unrelated preference cookie."""
    return CookieJar(
        [
            session_cookie,
            SessionCredential(name="theme", value="dark", domain="v0.dev"),
        ]
    )


@pytest.fixture
def sample_config() -> Config:
    """Returns a default Config for testing."""
    return Config(
        base_url="https://v0.dev",
        browser="default",
        login_timeout=120,
        check_interval=3,
        connect_timeout=5.0,
        read_timeout=10.0,
        forget_stale_sessions=False,
    )


@pytest.fixture
def tmp_storage(tmp_path) -> Storage:
    """Returns a Storage instance using a temporary directory."""
    return Storage(base_path=tmp_path / "store")


@pytest.fixture
def auth_store(tmp_path) -> AuthStateStore:
    return AuthStateStore(tmp_path / "store")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
