"""v0.dev API client for chatting with an authenticated session."""

import json
import logging
import uuid
from typing import Any

import httpx

from v0cli.exceptions import ChatError, SessionExpiredError
from v0cli.models import CookieJar
from v0cli.strategies import BROWSER_HEADERS

logger = logging.getLogger(__name__)

BASE_URL = "https://v0.dev"
CONVERSATION_PATH = "/api/conversation"
CHAT_PATH = "/api/chat"

CHAT_TIMEOUT_SECONDS = 60.0


class V0Client:
    """Client for v0.dev's chat API. Every request carries the session cookies."""

    def __init__(self, cookies: CookieJar, base_url: str = BASE_URL, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            headers=self._build_headers(),
            cookies=cookies.to_httpx(),
            timeout=timeout,
        )

    def _build_headers(self) -> dict[str, str]:
        return {
            **BROWSER_HEADERS,
            "Accept": "application/json",
            "Referer": self._base_url,
            "Origin": self._base_url,
        }

    def _check_response_auth(self, response: httpx.Response) -> None:
        if response.status_code in (401, 403):
            raise SessionExpiredError()

    def get_or_create_conversation(self) -> str:
        """Reuse the most recent conversation or start a new one."""
        try:
            response = self._client.get(f"{self._base_url}{CONVERSATION_PATH}")
        except httpx.HTTPError as e:
            logger.warning(f"Listing conversations failed: {e}")
            return self.create_conversation()

        self._check_response_auth(response)

        if response.status_code == 200:
            try:
                conversations = response.json().get("conversations") or []
            except (ValueError, AttributeError):
                conversations = []
            if conversations and conversations[0].get("id"):
                return str(conversations[0]["id"])

        return self.create_conversation()

    def create_conversation(self) -> str:
        payload = {"title": f"v0-cli conversation {uuid.uuid4().hex[:8]}"}
        try:
            response = self._client.post(f"{self._base_url}{CONVERSATION_PATH}", json=payload)
        except httpx.HTTPError as e:
            raise ChatError(f"Failed to create conversation: {e}") from e

        self._check_response_auth(response)

        if response.status_code in (200, 201):
            try:
                data = response.json()
            except ValueError:
                data = {}
            if data.get("id"):
                return str(data["id"])

        raise ChatError(f"Failed to create conversation: HTTP {response.status_code}")

    def send_message(self, message: str) -> str:
        """Send a message and return the reply text."""
        conversation_id = self.get_or_create_conversation()
        url = f"{self._base_url}{CHAT_PATH}/{conversation_id}"
        logger.info(f"Sending message to conversation {conversation_id}")

        try:
            response = self._client.post(url, json={"message": message}, timeout=CHAT_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            raise ChatError(f"Failed to send message: {e}") from e

        self._check_response_auth(response)

        if response.status_code != 200:
            logger.error(f"Chat request failed with HTTP {response.status_code}: {response.text}")
            raise ChatError(f"Failed to send message: HTTP {response.status_code}")

        return self._parse_response(response.text)

    def _parse_response(self, body: str) -> str:
        try:
            data: Any = json.loads(body)
        except ValueError:
            return body

        if not isinstance(data, dict):
            return body

        for key in ("message", "content", "response"):
            if key in data:
                return str(data[key])
        if "error" in data:
            return f"Error: {data['error']}"
        return body

    def close(self) -> None:
        self._client.close()
