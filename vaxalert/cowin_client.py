from __future__ import annotations

import datetime as dt
import logging

import httpx
import pytz

from vaxalert.domain import Center, UpstreamError

logger = logging.getLogger(__name__)

BASE_URL = "https://cdn-api.co-vin.in/api"
CALENDAR_BY_DISTRICT = "/v2/appointment/sessions/public/calendarByDistrict"


def build_headers(app_version: str) -> dict[str, str]:
    return {
        "Accept": "application/json",
        "User-Agent": f"vaccine-alert/{app_version}",
    }


def today_str(timezone: str, *, now: dt.datetime | None = None) -> str:
    """Calendar date in the API's DD-MM-YYYY form."""
    tz = pytz.timezone(timezone)
    if now is None:
        now = dt.datetime.now(tz=tz)
    elif now.tzinfo is not None:
        now = now.astimezone(tz)
    return now.strftime("%d-%m-%Y")


async def fetch_calendar(
    client: httpx.AsyncClient,
    *,
    district_id: int,
    date_str: str,
    app_version: str,
) -> list[Center] | None:
    """Fetch the 7-day calendar starting at date_str.

    Returns None when the body has no usable "centers" list; that is
    treated as "no data this tick" by the caller. A centers entry that
    lacks a required field raises MalformedPayloadError.
    """
    r = await client.get(
        BASE_URL + CALENDAR_BY_DISTRICT,
        params={"district_id": district_id, "date": date_str},
        headers=build_headers(app_version),
    )
    if r.is_error:
        raise UpstreamError(r.status_code, r.text)

    try:
        data = r.json()
    except ValueError:
        logger.warning("District %s: response is not JSON (%d bytes)", district_id, len(r.content))
        return None

    centers = data.get("centers") if isinstance(data, dict) else None
    if not isinstance(centers, list):
        return None

    return [Center.from_api(c) for c in centers]
