from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import DeliveryError
from ..utils import trim
from .types import NotificationChannel, SendOptions

LOGGER = logging.getLogger(__name__)

TELEGRAM_MAX_MESSAGE_CHARS = 4096


class TelegramChannel(NotificationChannel):
    """Telegram Bot API channel; a recipient handle is a chat id."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str | None,
        *,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_token = bot_token.strip() if isinstance(bot_token, str) else None
        self._api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def enabled(self) -> bool:
        return bool(self._bot_token)

    def _method_url(self, method: str) -> str:
        return f"{self._api_base}/bot{self._bot_token}/{method}"

    async def send(self, handle: str, text: str, options: SendOptions) -> None:
        if not self.enabled():
            raise DeliveryError("Telegram bot token is not configured")

        # Cutting HTML could split a tag or entity, so only plain text is trimmed
        body_text = text if options.rich_formatting else trim(text, TELEGRAM_MAX_MESSAGE_CHARS)
        payload: dict[str, Any] = {
            "chat_id": handle,
            "text": body_text,
            "disable_web_page_preview": options.suppress_link_preview,
        }
        if options.rich_formatting:
            payload["parse_mode"] = "HTML"

        try:
            response = await self._client.post(self._method_url("sendMessage"), json=payload)
        except httpx.RequestError as exc:
            # The exception text can carry the request URL, which embeds the token
            raise DeliveryError(f"Telegram request failed: {type(exc).__name__}") from exc

        body = self._decode(response)
        if response.status_code < 400 and body.get("ok", False):
            return

        parameters = body.get("parameters") or {}
        raise DeliveryError(
            str(body.get("description") or f"HTTP {response.status_code}"),
            error_code=body.get("error_code", response.status_code),
            retry_after=parameters.get("retry_after"),
        )

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            LOGGER.debug("Telegram returned a non-JSON body (HTTP %s)", response.status_code)
            return {}
        return body if isinstance(body, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()
