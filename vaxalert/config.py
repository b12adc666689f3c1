from __future__ import annotations

import os
import re
from dataclasses import dataclass

import pytz
from dotenv import load_dotenv

SUPPORTED_AGE_TIERS = (18, 45)

_CHANNEL_USERNAME_RE = re.compile(r"^@?[A-Za-z][A-Za-z0-9_]{4,31}$")


def _parse_chat_id(name: str, p: str) -> str:
    # Telegram accepts numeric chat ids (groups/supergroups are negative)
    # or a public channel username.
    try:
        value = int(p)
    except ValueError:
        if not _CHANNEL_USERNAME_RE.match(p):
            raise RuntimeError(
                f"Invalid {name} value: {p!r}. Expected integer chat id or channel username."
            ) from None
        return p if p.startswith("@") else f"@{p}"

    if value == 0:
        raise RuntimeError(f"Invalid {name} value: '0' is not a valid chat id")
    return p


def _parse_chat_ids(name: str, raw: str) -> tuple[str, ...]:
    # Single value or a comma-separated list:
    #   TELEGRAM_CHAT_ID=vaccine_alerts_delhi
    #   TELEGRAM_CHAT_ID=123456789,-1001234567890
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        chat_id = _parse_chat_id(name, p)
        if chat_id in seen:
            continue
        seen.add(chat_id)
        result.append(chat_id)

    if not result:
        raise RuntimeError(f"{name} is empty. Provide at least one chat id.")

    return tuple(result)


def _parse_int_list(name: str, raw: str) -> tuple[int, ...]:
    seen: set[int] = set()
    result: list[int] = []
    for p in (p.strip() for p in raw.split(",")):
        if not p:
            continue
        try:
            value = int(p)
        except ValueError as e:
            raise RuntimeError(f"Invalid {name} value: {p!r}. Expected integer.") from e
        if value <= 0:
            raise RuntimeError(f"Invalid {name} value: {p!r}. Expected positive integer.")
        if value in seen:
            continue
        seen.add(value)
        result.append(value)

    if not result:
        raise RuntimeError(f"{name} is empty. Provide at least one value.")
    return tuple(result)


def _int_env(name: str, default: str, *, minimum: int) -> int:
    raw = os.getenv(name, default).strip()
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer.") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    district_ids: tuple[int, ...]

    # Destination chats per age tier, e.g. ((18, ("@delhi18",)), (45, ("@delhi45",)))
    chat_ids_by_age_tier: tuple[tuple[int, tuple[str, ...]], ...] = ()

    poll_interval_seconds: int = 15
    republish_interval_minutes: int = 30

    # Sent upstream as "vaccine-alert/<version>"
    app_version: str = "dev"

    # "Today" for the calendar query is taken in this zone
    timezone: str = "Asia/Kolkata"

    request_timeout_seconds: float = 20.0

    # Optional chat for start/stop/crash messages
    telegram_admin_chat_id: str | None = None

    @property
    def age_tiers(self) -> tuple[int, ...]:
        return tuple(tier for tier, _ in self.chat_ids_by_age_tier)

    @property
    def republish_interval_seconds(self) -> int:
        return self.republish_interval_minutes * 60

    def chat_ids_for(self, age_tier: int) -> tuple[str, ...]:
        for tier, chat_ids in self.chat_ids_by_age_tier:
            if tier == age_tier:
                return chat_ids
        raise KeyError(age_tier)


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _load_chat_ids_by_age_tier(age_tiers: tuple[int, ...]) -> tuple[tuple[int, tuple[str, ...]], ...]:
    default_raw = os.getenv("TELEGRAM_CHAT_ID", "")

    result: list[tuple[int, tuple[str, ...]]] = []
    for tier in age_tiers:
        name = f"TELEGRAM_CHAT_ID_{tier}"
        raw = os.getenv(name, "")
        if raw.strip():
            result.append((tier, _parse_chat_ids(name, raw)))
        elif default_raw:
            result.append((tier, _parse_chat_ids("TELEGRAM_CHAT_ID", default_raw)))
        else:
            raise RuntimeError(f"Missing required environment variable: {name} (or TELEGRAM_CHAT_ID)")
    return tuple(result)


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    age_tiers = _parse_int_list("AGE_TIERS", os.getenv("AGE_TIERS", "18"))
    for tier in age_tiers:
        if tier not in SUPPORTED_AGE_TIERS:
            raise RuntimeError(
                f"Unsupported AGE_TIERS value: {tier}. Expected one of {', '.join(map(str, SUPPORTED_AGE_TIERS))}."
            )

    admin_raw = os.getenv("TELEGRAM_ADMIN_CHAT_ID", "").strip()
    admin_chat_id = _parse_chat_id("TELEGRAM_ADMIN_CHAT_ID", admin_raw) if admin_raw else None

    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS", "20").strip()
    try:
        request_timeout_seconds = float(timeout_raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid REQUEST_TIMEOUT_SECONDS value: {timeout_raw!r}") from e
    if request_timeout_seconds <= 0:
        raise RuntimeError("REQUEST_TIMEOUT_SECONDS must be > 0")

    timezone = os.getenv("TIMEZONE", "").strip() or "Asia/Kolkata"
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError as e:
        raise RuntimeError(f"Invalid TIMEZONE value: {timezone!r}") from e

    return Settings(
        telegram_bot_token=_require("TELEGRAM_BOT_TOKEN"),
        district_ids=_parse_int_list("DISTRICT_IDS", _require("DISTRICT_IDS")),
        chat_ids_by_age_tier=_load_chat_ids_by_age_tier(age_tiers),
        poll_interval_seconds=_int_env("POLL_INTERVAL_SECONDS", "15", minimum=1),
        republish_interval_minutes=_int_env("REPUBLISH_INTERVAL_MINUTES", "30", minimum=0),
        app_version=os.getenv("APP_VERSION", "").strip() or "dev",
        timezone=timezone,
        request_timeout_seconds=request_timeout_seconds,
        telegram_admin_chat_id=admin_chat_id,
    )
