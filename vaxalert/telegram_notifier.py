from __future__ import annotations

import httpx

from vaxalert.domain import TelegramDeliveryError

TELEGRAM_API_URL = "https://api.telegram.org"


async def send_telegram_message(
    client: httpx.AsyncClient,
    *,
    bot_token: str,
    chat_id: str,
    text: str,
) -> None:
    url = f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }

    r = await client.post(url, json=payload)
    if r.is_error:
        raise TelegramDeliveryError(r.status_code, r.text)
    try:
        data = r.json()
    except ValueError:
        raise TelegramDeliveryError(r.status_code, r.text) from None
    if not isinstance(data, dict) or not data.get("ok", False):
        raise TelegramDeliveryError(r.status_code, r.text)
