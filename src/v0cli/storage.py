"""Local file operations for the session store and configuration."""

import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Optional

from v0cli.exceptions import StorageError
from v0cli.models import AuthRecord, Config, CookieJar, SessionCredential
from v0cli.validity import is_stale, is_valid, now_ms

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Config(
    base_url="https://v0.dev",
    browser="default",
    login_timeout=120,
    check_interval=3,
    connect_timeout=5.0,
    read_timeout=10.0,
    forget_stale_sessions=False,
)

# Settings that must be greater than zero
POSITIVE_SETTINGS = ("login_timeout", "check_interval", "connect_timeout", "read_timeout")

AUTH_FILENAME = "auth.json"
COOKIES_FILENAME = "cookies.json"
LOG_FILENAME = "v0cli.log"


def default_base_path() -> Path:
    """Per-user directory, overridable with V0CLI_HOME."""
    override = os.environ.get("V0CLI_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".v0cli"


class AuthStateStore:
    """Durable record of the current session and its cookies.

    The cookie file is always written before the auth record, so a crash
    mid-save never leaves a record pointing at a missing jar.
    """

    def __init__(self, base_path: Path, forget_stale: bool = False) -> None:
        self.base_path = base_path
        self.auth_path = base_path / AUTH_FILENAME
        self.cookies_path = base_path / COOKIES_FILENAME
        self.forget_stale = forget_stale

    def exists(self) -> bool:
        return self.auth_path.exists()

    def cookies_present(self) -> bool:
        return self.cookies_path.exists()

    def load(self) -> Optional[AuthRecord]:
        """Load the auth record, or None if there isn't a readable one."""
        if not self.exists():
            return None

        try:
            data = json.loads(self.auth_path.read_text(encoding="utf-8"))
            return AuthRecord(
                created_at_ms=int(data["timestamp"]),
                cookies_file=str(data.get("cookiesFile", self.cookies_path)),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable auth record {self.auth_path}: {e}")
            return None

    def save(self, cookies: CookieJar) -> AuthRecord:
        """Persist the cookie jar, then the auth record stamped with the current time."""
        if len(cookies) == 0:
            raise StorageError("Refusing to save an empty cookie jar")

        record = AuthRecord(created_at_ms=now_ms(), cookies_file=str(self.cookies_path))
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            _write_private(
                self.cookies_path,
                json.dumps([cookie.to_dict() for cookie in cookies], indent=2),
            )
            _write_private(
                self.auth_path,
                json.dumps({"timestamp": record.created_at_ms, "cookiesFile": record.cookies_file}, indent=2),
            )
        except OSError as e:
            raise StorageError(f"Failed to save session to {self.base_path}: {e}") from e

        logger.info(f"Saved {len(cookies)} cookies to {self.cookies_path}")
        return record

    def clear(self) -> None:
        """Delete the auth record and the cookie jar. Missing files are fine."""
        errors = []
        for path in (self.auth_path, self.cookies_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to delete {path}: {e}")
                errors.append(f"{path.name}: {e}")

        if errors:
            raise StorageError("Failed to clear session: " + "; ".join(errors))
        logger.info("Session files cleared")

    def load_cookies(self) -> CookieJar:
        """Load stored cookies. Read or parse failures yield an empty jar."""
        jar = CookieJar()
        if not self.cookies_present():
            return jar

        try:
            entries = json.loads(self.cookies_path.read_text(encoding="utf-8"))
            if not isinstance(entries, list):
                raise ValueError("cookie file does not contain a list")
            for entry in entries:
                jar.add(SessionCredential.from_dict(entry))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load cookies from {self.cookies_path}: {e}")
            return CookieJar()

        return jar

    def is_logged_in(self, now: Optional[int] = None) -> bool:
        record = self.load()
        if record is None:
            return False

        if self.forget_stale and is_stale(record, now):
            logger.info("Stored session is older than 30 days, removing it")
            self.clear()
            return False

        return is_valid(record, self.cookies_present(), now)


def _write_private(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")
    try:
        os.chmod(path, 0o600)
    except OSError:
        logger.debug(f"Could not restrict permissions on {path}")


class Storage:
    """Manages the per-user directory: configuration, session store and log file."""

    def __init__(self, base_path: Path | None = None) -> None:
        self.base_path = base_path or default_base_path()
        self.config_path = self.base_path / "config.json"
        self.log_path = self.base_path / LOG_FILENAME

    def _ensure_dirs(self) -> None:
        """Create the base directory if it doesn't exist."""
        self.base_path.mkdir(parents=True, exist_ok=True)

    def auth_store(self, config: Config | None = None) -> AuthStateStore:
        """Return the session store living in this directory."""
        config = config or self.get_config()
        return AuthStateStore(self.base_path, forget_stale=config.forget_stale_sessions)

    def get_config(self) -> Config:
        """Load config from config.json."""
        if not self.config_path.exists():
            return DEFAULT_CONFIG

        data = json.loads(self.config_path.read_text(encoding="utf-8"))
        config = Config(
            base_url=data.get("base_url", DEFAULT_CONFIG.base_url),
            browser=data.get("browser", DEFAULT_CONFIG.browser),
            login_timeout=int(data.get("login_timeout", DEFAULT_CONFIG.login_timeout)),
            check_interval=int(data.get("check_interval", DEFAULT_CONFIG.check_interval)),
            connect_timeout=float(data.get("connect_timeout", DEFAULT_CONFIG.connect_timeout)),
            read_timeout=float(data.get("read_timeout", DEFAULT_CONFIG.read_timeout)),
            forget_stale_sessions=bool(
                data.get("forget_stale_sessions", DEFAULT_CONFIG.forget_stale_sessions)
            ),
        )

        for name in POSITIVE_SETTINGS:
            if not getattr(config, name) > 0:
                logger.warning(f"Ignoring non-positive {name} in {self.config_path}, using the default")
                config = dataclasses.replace(config, **{name: getattr(DEFAULT_CONFIG, name)})
        return config

    def save_config(self, config: Config) -> None:
        """Save config to config.json."""
        self._ensure_dirs()
        data = {
            "base_url": config.base_url,
            "browser": config.browser,
            "login_timeout": config.login_timeout,
            "check_interval": config.check_interval,
            "connect_timeout": config.connect_timeout,
            "read_timeout": config.read_timeout,
            "forget_stale_sessions": config.forget_stale_sessions,
        }
        self.config_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
