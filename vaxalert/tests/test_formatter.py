from __future__ import annotations

import pytest

from vaxalert.domain import Center, Session
from vaxalert.formatter import BOOKING_URL, format_message


def _session(date: str, dose1: int, dose2: int) -> Session:
    return Session(
        session_id=date,
        date=date,
        available_capacity=dose1 + dose2,
        min_age_limit=18,
        available_capacity_dose1=dose1,
        available_capacity_dose2=dose2,
    )


def test_format_message_layout() -> None:
    centers = [
        Center(
            center_id=1,
            name="Apollo Hospital",
            district_name="South Delhi",
            sessions=(_session("20-05-2021", 10, 2), _session("21-05-2021", 3, 0)),
        ),
        Center(center_id=2, name="UPHC Saket", district_name="South Delhi", sessions=(_session("20-05-2021", 0, 4),)),
    ]

    text = format_message(centers, district_id=149, age_tier=18)

    assert text.splitlines()[0] == "<b>South Delhi 18+ Available Slots</b>"
    assert "<i>Apollo Hospital</i>\n  20-05-2021 (10|2), 21-05-2021 (3|0)" in text
    assert "<i>UPHC Saket</i>\n  20-05-2021 (0|4)" in text
    assert text.endswith(f'<a href="{BOOKING_URL}">Book on CoWIN</a>')
    assert text.index("Apollo") < text.index("UPHC")


def test_format_message_falls_back_to_district_id_and_escapes() -> None:
    centers = [Center(center_id=1, name="Dr. Lal & Sons <PHC>", sessions=(_session("20-05-2021", 1, 0),))]

    text = format_message(centers, district_id=294, age_tier=45)

    assert text.startswith("<b>District 294 45+ Available Slots</b>")
    assert "<i>Dr. Lal &amp; Sons &lt;PHC&gt;</i>" in text


def test_format_message_rejects_empty_input() -> None:
    with pytest.raises(ValueError):
        format_message([], district_id=294, age_tier=18)


def _week(dose1: int) -> tuple[Session, ...]:
    return tuple(_session(f"{day:02d}-05-2021", dose1, 0) for day in range(20, 27))


def test_format_message_large_district_fits_telegram_limit() -> None:
    centers = [
        Center(
            center_id=i,
            name=f"Urban Primary Health Centre Number {i}",
            district_name="Bangalore Urban",
            sessions=_week(100 + i),
        )
        for i in range(40)
    ]

    text = format_message(centers, district_id=294, age_tier=18)

    assert len(text) <= 4096
    assert text.startswith("<b>Bangalore Urban 18+ Available Slots</b>")
    assert text.endswith(f'<a href="{BOOKING_URL}">Book on CoWIN</a>')
    shown = text.count("<i>")
    assert 0 < shown < 40
    assert f"…and {40 - shown} more centers\n\n<a href=" in text


def test_format_message_summary_line_uses_singular() -> None:
    centers = [Center(center_id=i, name=f"C{i}", sessions=(_session("20-05-2021", 1, 0),)) for i in range(2)]
    full = format_message(centers, district_id=294, age_tier=18)

    text = format_message(centers, district_id=294, age_tier=18, max_length=len(full) - 1)

    assert "<i>C0</i>" in text
    assert "<i>C1</i>" not in text
    assert "…and 1 more center\n" in text
    assert len(text) <= len(full) - 1


def test_format_message_without_overflow_has_no_summary() -> None:
    centers = [Center(center_id=1, name="Only", sessions=_week(5))]
    assert "more center" not in format_message(centers, district_id=294, age_tier=18)
