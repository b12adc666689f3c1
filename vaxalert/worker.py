from __future__ import annotations

import asyncio
import logging
import time

import httpx

from vaxalert.change_detector import commit_notification, detect_change
from vaxalert.config import Settings
from vaxalert.cowin_client import fetch_calendar, today_str
from vaxalert.domain import NotificationState, WatchKey
from vaxalert.eligibility import filter_eligible
from vaxalert.formatter import format_message
from vaxalert.telegram_notifier import send_telegram_message

logger = logging.getLogger(__name__)


def build_states(settings: Settings) -> dict[WatchKey, NotificationState]:
    return {
        WatchKey(district_id=district_id, age_tier=age_tier): NotificationState()
        for district_id in settings.district_ids
        for age_tier in settings.age_tiers
    }


def _http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.request_timeout_seconds)


async def broadcast(client: httpx.AsyncClient, settings: Settings, chat_ids: tuple[str, ...], text: str) -> None:
    errors: list[tuple[str, Exception]] = []

    for chat_id in chat_ids:
        try:
            await send_telegram_message(
                client,
                bot_token=settings.telegram_bot_token,
                chat_id=chat_id,
                text=text,
            )
        except Exception as e:
            # Best-effort: don't stop sending to other chat_ids.
            logger.warning("Failed to send telegram message to chat_id=%s (%s: %s)", chat_id, type(e).__name__, e)
            errors.append((chat_id, e))

    if errors:
        # If at least one send failed, raise so the caller does not record the alert as published.
        failed = ", ".join([cid for cid, _ in errors])
        raise RuntimeError(f"Failed to send telegram message to some recipients: {failed}")


async def send_status_message(settings: Settings, text: str) -> None:
    # Only goes to the admin chat; alert channels never get service chatter.
    if settings.telegram_admin_chat_id is None:
        return
    async with _http_client(settings) as client:
        await broadcast(client, settings, (settings.telegram_admin_chat_id,), text)


async def run_tick(
    client: httpx.AsyncClient,
    settings: Settings,
    key: WatchKey,
    state: NotificationState,
    *,
    now: float | None = None,
    today: str | None = None,
) -> bool:
    """Poll once for a key and publish if the change detector says so.

    Returns True when a notification went out. Fetch and delivery errors
    propagate; the state is only touched by the change detector.
    """
    if now is None:
        now = time.monotonic()
    if today is None:
        today = today_str(settings.timezone)

    centers = await fetch_calendar(
        client,
        district_id=key.district_id,
        date_str=today,
        app_version=settings.app_version,
    )
    if centers is None:
        logger.warning("%s %s: no centers in response, skipping", today, key)
        return False

    available = filter_eligible(centers, key.age_tier)
    logger.info("%s %s Available: %d", today, key, len(available))

    change = detect_change(
        state,
        available,
        now=now,
        republish_interval_seconds=settings.republish_interval_seconds,
    )
    if change is None:
        return False

    text = format_message(available, district_id=key.district_id, age_tier=key.age_tier)
    await broadcast(client, settings, settings.chat_ids_for(key.age_tier), text)
    commit_notification(state, change, now=now)

    logger.info(
        "%s %s Published: %d sessions (%s)",
        today,
        key,
        sum(len(c.sessions) for c in available),
        change.reason,
    )
    return True


async def watch_forever(
    client: httpx.AsyncClient,
    settings: Settings,
    key: WatchKey,
    state: NotificationState,
) -> None:
    # The next tick is scheduled only after this one has fully finished.
    while True:
        try:
            await run_tick(client, settings, key, state)
        except Exception as e:
            logger.error("Tick failed for %s (%s: %s)", key, type(e).__name__, e)
        await asyncio.sleep(settings.poll_interval_seconds)


async def run_check_once(settings: Settings) -> int:
    states = build_states(settings)

    async with _http_client(settings) as client:
        results = await asyncio.gather(
            *(run_tick(client, settings, key, state) for key, state in states.items()),
            return_exceptions=True,
        )

    sent = 0
    for key, result in zip(states, results):
        if isinstance(result, Exception):
            logger.error("Check failed for %s (%s: %s)", key, type(result).__name__, result)
        elif result:
            sent += 1
    return sent


async def run_forever(settings: Settings) -> None:
    states = build_states(settings)
    logger.info(
        "Worker started. Keys=%d interval=%ss republish=%smin",
        len(states),
        settings.poll_interval_seconds,
        settings.republish_interval_minutes,
    )

    async with _http_client(settings) as client:
        await asyncio.gather(*(watch_forever(client, settings, key, state) for key, state in states.items()))
