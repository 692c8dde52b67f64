"""Session manager for coordinating v0.dev authentication."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional, Sequence

from v0cli.browser import open_login_page
from v0cli.client import V0Client
from v0cli.controller import SessionAcquisitionController
from v0cli.cookies import CookieJarHandle
from v0cli.exceptions import NotLoggedInError
from v0cli.interaction import UserInteractionPort
from v0cli.models import AcquisitionResult, AcquisitionState, CookieJar
from v0cli.storage import AuthStateStore, Storage
from v0cli.strategies import ExtractionStrategy, ProbeContext, default_strategies

logger = logging.getLogger(__name__)


class SessionManager:
    """Coordinates authentication and provides authenticated v0.dev clients.

    Login cycles run on a single background worker, so a second login()
    queues behind the first and logout() never overlaps a save.
    """

    def __init__(
        self,
        storage: Storage | None = None,
        interaction: UserInteractionPort | None = None,
        strategies: Sequence[ExtractionStrategy] | None = None,
        opener: Callable[[str], object] | None = None,
        handle: CookieJarHandle | None = None,
    ) -> None:
        self._storage = storage or Storage()
        self._config = self._storage.get_config()
        self._store = self._storage.auth_store(self._config)
        self._interaction = interaction
        self._strategies = strategies
        self._opener = opener or partial(open_login_page, browser=self._config.browser)
        self._handle = handle or CookieJarHandle()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="v0-login")

    @property
    def store(self) -> AuthStateStore:
        return self._store

    def is_logged_in(self) -> bool:
        return self._store.is_logged_in()

    def get_cookies(self) -> CookieJar:
        """Active session cookies, loaded from disk on first use.

        Empty once the stored session is gone or stale, even if cookies were
        still held in memory.
        """
        if not self.is_logged_in():
            self._handle.clear()
            return CookieJar()
        if len(self._handle) == 0:
            self._handle.replace(self._store.load_cookies())
        return self._handle.snapshot()

    def create_controller(self) -> SessionAcquisitionController:
        if self._interaction is None:
            raise ValueError("A UserInteractionPort is required to log in")

        context = ProbeContext(
            base_url=self._config.base_url,
            seed=self._handle.snapshot(),
            connect_timeout=self._config.connect_timeout,
            read_timeout=self._config.read_timeout,
        )
        return SessionAcquisitionController(
            store=self._store,
            handle=self._handle,
            interaction=self._interaction,
            context=context,
            strategies=self._strategies if self._strategies is not None else default_strategies(),
            opener=self._opener,
            login_url=self._config.base_url,
            login_timeout=self._config.login_timeout,
            check_interval=self._config.check_interval,
        )

    def _run_cycle(self, on_complete: Optional[Callable[[bool], None]]) -> AcquisitionResult:
        try:
            result = self.create_controller().run()
        except Exception:
            logger.exception("Error during login process")
            result = AcquisitionResult(
                state=AcquisitionState.FAILED, message="Unexpected error during login, see the log file"
            )

        if on_complete is not None:
            on_complete(result.success)
        return result

    def login(self, on_complete: Optional[Callable[[bool], None]] = None) -> "Future[AcquisitionResult]":
        """Queue one acquisition cycle on the login worker."""
        logger.info("Login requested")
        return self._executor.submit(self._run_cycle, on_complete)

    def import_cookies(self, jar: CookieJar) -> None:
        """Persist cookies obtained outside the login flow."""
        self._executor.submit(self._import, jar).result()

    def _import(self, jar: CookieJar) -> None:
        self._store.save(jar)
        self._handle.replace(self._store.load_cookies())

    def logout(self) -> None:
        """Forget the session on disk and in memory."""
        self._executor.submit(self._logout).result()

    def _logout(self) -> None:
        self._handle.clear()
        self._store.clear()
        logger.info("Logged out successfully")

    def get_client(self) -> V0Client:
        """Return an authenticated v0.dev client using the stored session."""
        if not self.is_logged_in():
            raise NotLoggedInError()

        return V0Client(
            self.get_cookies(),
            base_url=self._config.base_url,
            timeout=self._config.read_timeout,
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
