from __future__ import annotations

from html import escape
from typing import Sequence

from vaxalert.domain import Center

BOOKING_URL = "https://selfregistration.cowin.gov.in/"

# Telegram sendMessage rejects longer texts.
MAX_MESSAGE_LENGTH = 4096


def _district_label(centers: Sequence[Center], district_id: int) -> str:
    name = centers[0].district_name.strip()
    return name or f"District {district_id}"


def _center_block(center: Center) -> str:
    sessions = ", ".join(
        f"{escape(s.date)} ({s.available_capacity_dose1}|{s.available_capacity_dose2})" for s in center.sessions
    )
    return f"<i>{escape(center.name)}</i>\n  {sessions}\n\n"


def _more_line(count: int) -> str:
    return f"…and {count} more center{'' if count == 1 else 's'}\n\n"


def format_message(
    centers: Sequence[Center],
    *,
    district_id: int,
    age_tier: int,
    booking_url: str = BOOKING_URL,
    max_length: int = MAX_MESSAGE_LENGTH,
) -> str:
    """Render eligible centers as a Telegram HTML message.

    Per session: date and dose-1|dose-2 capacity. Centers that do not fit
    into max_length are summarised in a single "…and N more centers" line.
    """
    if not centers:
        raise ValueError("format_message() needs at least one center")

    header = f"<b>{escape(_district_label(centers, district_id))} {age_tier}+ Available Slots</b>\n\n"
    footer = f'<a href="{escape(booking_url)}">Book on CoWIN</a>'

    blocks = [_center_block(c) for c in centers]
    body: list[str] = []
    used = len(header) + len(footer)
    for i, block in enumerate(blocks):
        # Always leave room for the summary line of whatever comes after.
        remaining = len(blocks) - i - 1
        reserve = len(_more_line(remaining)) if remaining else 0
        if used + len(block) + reserve > max_length:
            break
        body.append(block)
        used += len(block)

    omitted = len(blocks) - len(body)
    if omitted:
        body.append(_more_line(omitted))

    return header + "".join(body) + footer
