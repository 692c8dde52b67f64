"""
Session acquisition state machine.

One cycle goes:

    IDLE -> CHECKING_EXISTING -> OPENING_EXTERNAL_LOGIN -> POLLING_EXTRACTION
         -> MANUAL_CONFIRM_PENDING -> MANUAL_COOKIE_INPUT_PENDING -> PERSISTING
         -> SUCCEEDED | FAILED | CANCELLED

and leaves early for PERSISTING as soon as any strategy returns a cookie
jar. A controller runs exactly one cycle.
"""

import logging
import time
from typing import Callable, Optional, Sequence

from v0cli.cookies import CookieJarHandle, parse_manual_cookies
from v0cli.exceptions import LoginCancelledError, ManualInputError, StorageError, V0Error
from v0cli.interaction import UserInteractionPort
from v0cli.models import (
    AcquisitionAttempt,
    AcquisitionResult,
    AcquisitionState,
    CookieJar,
    OutcomeKind,
    ProbeOutcome,
)
from v0cli.storage import AuthStateStore
from v0cli.strategies import ExtractionStrategy, ProbeContext

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT_SECONDS = 120
CHECK_INTERVAL_SECONDS = 3

CONFIRM_PROMPT = (
    "Have you completed the login process in the browser?\n"
    "Answer yes once you've successfully logged in to v0.dev."
)

MANUAL_INPUT_INSTRUCTIONS = (
    "Automatic cookie detection failed. Paste your v0.dev cookies below.\n"
    "Accepted formats:\n"
    "  - JSON exported by a cookie extension (array or single object)\n"
    "  - rows copied from DevTools > Application > Cookies\n"
    "  - name=value, one cookie per line"
)


class SessionAcquisitionController:
    """Drives one login cycle from IDLE to a terminal state."""

    def __init__(
        self,
        store: AuthStateStore,
        handle: CookieJarHandle,
        interaction: UserInteractionPort,
        context: ProbeContext,
        strategies: Sequence[ExtractionStrategy],
        opener: Callable[[str], object],
        login_url: Optional[str] = None,
        login_timeout: float = LOGIN_TIMEOUT_SECONDS,
        check_interval: float = CHECK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.handle = handle
        self.interaction = interaction
        self.context = context
        self.strategies = list(strategies)
        self.opener = opener
        self.login_url = login_url or context.base_url
        self.login_timeout = login_timeout
        self.check_interval = check_interval
        self._clock = clock
        self._sleep = sleep
        self._state = AcquisitionState.IDLE
        self._deadline: Optional[float] = None
        self.context.should_stop = self._should_stop
        self.attempts: list[AcquisitionAttempt] = []

    @property
    def state(self) -> AcquisitionState:
        return self._state

    def run(self) -> AcquisitionResult:
        """Run the whole cycle and return its terminal result."""
        if self._state is not AcquisitionState.IDLE:
            raise RuntimeError("SessionAcquisitionController can only run once")

        logger.info("Starting session acquisition")
        try:
            jar = self._acquire()
        except LoginCancelledError as e:
            return self._finish(AcquisitionState.CANCELLED, e.message)
        except V0Error as e:
            logger.error(f"Login failed in state {self._state.value}: {e.message}")
            return self._finish(AcquisitionState.FAILED, e.message)

        return self._persist(jar)

    def _transition(self, state: AcquisitionState) -> None:
        logger.debug(f"Login state {self._state.value} -> {state.value}")
        self._state = state

    def _finish(self, state: AcquisitionState, message: str) -> AcquisitionResult:
        self._transition(state)
        logger.info(f"Session acquisition finished: {state.value} ({message})")
        return AcquisitionResult(state=state, message=message, attempts=list(self.attempts))

    def _check_cancelled(self) -> None:
        if self.interaction.is_cancelled():
            raise LoginCancelledError()

    def _acquire(self) -> CookieJar:
        self._transition(AcquisitionState.CHECKING_EXISTING)
        jar = self._run_strategies()
        if jar is not None:
            return jar

        self._transition(AcquisitionState.OPENING_EXTERNAL_LOGIN)
        self.opener(self.login_url)

        self._transition(AcquisitionState.POLLING_EXTRACTION)
        jar = self._poll()
        if jar is not None:
            return jar

        self._transition(AcquisitionState.MANUAL_CONFIRM_PENDING)
        confirmed = self.interaction.confirm(CONFIRM_PROMPT)
        self._check_cancelled()
        if not confirmed:
            raise V0Error("Login was not completed in the browser")

        jar = self._run_strategies()
        if jar is not None:
            return jar

        self._transition(AcquisitionState.MANUAL_COOKIE_INPUT_PENDING)
        text = self.interaction.request_manual_input(MANUAL_INPUT_INSTRUCTIONS)
        self._check_cancelled()
        jar = parse_manual_cookies(text or "", self.context.domain)
        if len(jar) == 0:
            raise ManualInputError()
        logger.info(f"Accepted {len(jar)} manually entered cookies")
        return jar

    def _poll(self) -> Optional[CookieJar]:
        """Probe every check_interval until a jar turns up or the deadline passes."""
        started = self._clock()
        self._deadline = started + self.login_timeout
        try:
            return self._poll_until(started, self._deadline)
        finally:
            self._deadline = None

    def _poll_until(self, started: float, deadline: float) -> Optional[CookieJar]:
        while True:
            now = self._clock()
            remaining = deadline - now
            if remaining <= 0:
                logger.info(f"No session found within {self.login_timeout}s")
                return None

            percent = int((now - started) * 100 / self.login_timeout)
            self.interaction.report_progress(
                percent, f"Waiting for login in the browser ({int(remaining)}s left)"
            )
            self._check_cancelled()

            jar = self._run_strategies()
            if jar is not None:
                return jar

            self._sleep(min(self.check_interval, max(0.0, deadline - self._clock())))

    def _out_of_time(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def _should_stop(self) -> bool:
        return self.interaction.is_cancelled() or self._out_of_time()

    def _run_strategies(self) -> Optional[CookieJar]:
        """Run every strategy once in priority order; first success wins.

        Cancellation and the polling deadline are honoured between strategies,
        and a strategy shared by several probes runs once per round.
        """
        self.context.begin_round()
        for strategy in self.strategies:
            self._check_cancelled()
            if self._out_of_time():
                logger.debug(f"Deadline reached before strategy {strategy.name}")
                return None

            started_at = time.time()
            try:
                outcome = self.context.run_once(strategy)
            except Exception as e:
                logger.exception(f"Strategy {strategy.name} raised unexpectedly")
                outcome = ProbeOutcome.error(str(e))

            self.attempts.append(AcquisitionAttempt(strategy.name, started_at, outcome))

            if outcome.kind is OutcomeKind.ERROR:
                logger.warning(f"Strategy {strategy.name} failed: {outcome.reason}")
            elif outcome.succeeded and outcome.jar:
                logger.info(f"Strategy {strategy.name} found {len(outcome.jar)} cookies")
                return outcome.jar

        return None

    def _persist(self, jar: CookieJar) -> AcquisitionResult:
        self._transition(AcquisitionState.PERSISTING)
        try:
            self.store.save(jar)
        except StorageError as e:
            logger.exception("Failed to persist session")
            return self._finish(AcquisitionState.FAILED, e.message)

        loaded = self.store.load_cookies()
        self.handle.replace(loaded if len(loaded) else jar)
        self.interaction.report_progress(100, "Logged in")
        return self._finish(AcquisitionState.SUCCEEDED, f"Logged in with {len(jar)} cookies")
