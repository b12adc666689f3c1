from __future__ import annotations

from typing import Iterable

from vaxalert.domain import Center, Session


def is_eligible(session: Session, age_tier: int) -> bool:
    return session.available_capacity > 0 and session.min_age_limit == age_tier


def filter_eligible(centers: Iterable[Center], age_tier: int) -> list[Center]:
    """Keep only bookable sessions for the age tier; drop centers left empty.

    Input order is preserved.
    """
    result: list[Center] = []
    for center in centers:
        sessions = tuple(s for s in center.sessions if is_eligible(s, age_tier))
        if sessions:
            result.append(center.with_sessions(sessions))
    return result
