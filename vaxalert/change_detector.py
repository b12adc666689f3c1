from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Iterable

from vaxalert.domain import Center, NotificationState

REASON_NEW_CENTERS = "new_centers"
REASON_REPUBLISH = "republish"


@dataclass(frozen=True)
class Change:
    center_set_fingerprint: str
    result_fingerprint: str
    reason: str


def _digest(obj: Any) -> str:
    blob = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def center_set_fingerprint(centers: Iterable[Center]) -> str:
    # Set semantics: duplicates collapse, order is irrelevant.
    return _digest(sorted({c.center_id for c in centers}))


def result_fingerprint(centers: Iterable[Center]) -> str:
    rows = []
    for c in centers:
        sessions = sorted(
            [
                s.session_id,
                s.date,
                s.available_capacity,
                s.available_capacity_dose1,
                s.available_capacity_dose2,
            ]
            for s in c.sessions
        )
        rows.append([c.center_id, sessions])
    rows.sort()
    return _digest(rows)


def detect_change(
    state: NotificationState,
    centers: list[Center],
    *,
    now: float,
    republish_interval_seconds: float,
) -> Change | None:
    """Decide whether the eligible result is worth a new notification.

    A center set we have not published yet always notifies. A change that
    is only in capacities notifies at most once per re-publish interval.

    When nothing is eligible the stored center set is forgotten, so the
    next center to appear counts as new. That is the only mutation done
    here; see commit_notification() for the rest.
    """
    if not centers:
        state.center_set_fingerprint = None
        return None

    center_fp = center_set_fingerprint(centers)
    result_fp = result_fingerprint(centers)

    if center_fp != state.center_set_fingerprint:
        return Change(center_fp, result_fp, REASON_NEW_CENTERS)

    if result_fp != state.result_fingerprint:
        if state.last_notified_at is None or now - state.last_notified_at > republish_interval_seconds:
            return Change(center_fp, result_fp, REASON_REPUBLISH)

    return None


def commit_notification(state: NotificationState, change: Change, *, now: float) -> None:
    state.center_set_fingerprint = change.center_set_fingerprint
    state.result_fingerprint = change.result_fingerprint
    state.last_notified_at = now
