from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any


class MalformedPayloadError(ValueError):
    """Upstream calendar payload is missing a field we rely on, or has the wrong type."""


class UpstreamError(RuntimeError):
    """Calendar API answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Calendar API returned HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TelegramDeliveryError(RuntimeError):
    """Telegram refused the message (non-2xx or ok=false)."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Telegram API returned HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def _required(raw: Mapping[str, Any], key: str, kind: str) -> Any:
    if key not in raw or raw[key] is None:
        raise MalformedPayloadError(f"{kind} is missing field {key!r}")
    return raw[key]


def _as_int(value: Any, key: str, kind: str) -> int:
    # bool is an int subclass; upstream never sends one for a count.
    if isinstance(value, bool):
        raise MalformedPayloadError(f"{kind} field {key!r} is not a number: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"{kind} field {key!r} is not a number: {value!r}") from e


@dataclass(frozen=True)
class Session:
    """One date's appointments at a center."""

    session_id: str
    date: str  # DD-MM-YYYY, as returned upstream
    available_capacity: int
    min_age_limit: int
    vaccine: str = ""
    slots: tuple[str, ...] = ()
    available_capacity_dose1: int = 0
    available_capacity_dose2: int = 0

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> Session:
        if not isinstance(raw, Mapping):
            raise MalformedPayloadError(f"session is not an object: {raw!r}")

        slots = raw.get("slots") or ()
        if not isinstance(slots, (list, tuple)):
            raise MalformedPayloadError(f"session field 'slots' is not a list: {slots!r}")

        return cls(
            session_id=str(_required(raw, "session_id", "session")),
            date=str(_required(raw, "date", "session")),
            available_capacity=_as_int(
                _required(raw, "available_capacity", "session"), "available_capacity", "session"
            ),
            min_age_limit=_as_int(_required(raw, "min_age_limit", "session"), "min_age_limit", "session"),
            vaccine=str(raw.get("vaccine") or ""),
            slots=tuple(str(s) for s in slots),
            available_capacity_dose1=_as_int(
                raw.get("available_capacity_dose1") or 0, "available_capacity_dose1", "session"
            ),
            available_capacity_dose2=_as_int(
                raw.get("available_capacity_dose2") or 0, "available_capacity_dose2", "session"
            ),
        )


@dataclass(frozen=True)
class Center:
    """A vaccination site and its sessions, as one calendar snapshot."""

    center_id: int
    name: str
    sessions: tuple[Session, ...]
    address: str = ""
    state_name: str = ""
    district_name: str = ""
    block_name: str = ""
    pincode: int | None = None
    fee_type: str = ""

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> Center:
        if not isinstance(raw, Mapping):
            raise MalformedPayloadError(f"center is not an object: {raw!r}")

        sessions_raw = _required(raw, "sessions", "center")
        if not isinstance(sessions_raw, list):
            raise MalformedPayloadError(f"center field 'sessions' is not a list: {sessions_raw!r}")

        pincode = raw.get("pincode")
        return cls(
            center_id=_as_int(_required(raw, "center_id", "center"), "center_id", "center"),
            name=str(_required(raw, "name", "center")),
            sessions=tuple(Session.from_api(s) for s in sessions_raw),
            address=str(raw.get("address") or ""),
            state_name=str(raw.get("state_name") or ""),
            district_name=str(raw.get("district_name") or ""),
            block_name=str(raw.get("block_name") or ""),
            pincode=_as_int(pincode, "pincode", "center") if pincode is not None else None,
            fee_type=str(raw.get("fee_type") or ""),
        )

    def with_sessions(self, sessions: tuple[Session, ...]) -> Center:
        return replace(self, sessions=sessions)


@dataclass(frozen=True, order=True)
class WatchKey:
    district_id: int
    age_tier: int

    def __str__(self) -> str:
        return f"district={self.district_id} age={self.age_tier}+"


@dataclass
class NotificationState:
    """What was last published for one WatchKey.

    Lives only in process memory. Mutated by the change detector: on a
    successful notification, or when eligibility drops to zero.
    """

    center_set_fingerprint: str | None = None
    result_fingerprint: str | None = None
    last_notified_at: float | None = None
