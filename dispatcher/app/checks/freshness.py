"""
Freshness check.

A document is fresh while its creation time plus one calendar month is
still strictly in the future relative to `now`.

Calendar arithmetic follows dateutil's relativedelta: the day of month is
clamped when the target month is shorter (Jan 31 + 1 month = Feb 28/29).
A document created exactly one month before `now` is NOT fresh.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from dispatcher.app.schemas.models import Document

FRESHNESS_WINDOW = relativedelta(months=1)


def expires_at(document: Document) -> Optional[datetime]:
    """
    Instant from which the document is no longer considered fresh.

    None when that instant lies past `datetime.max`.
    """
    try:
        return document.created + FRESHNESS_WINDOW
    except (OverflowError, ValueError):
        return None


def is_fresh(document: Document, now: datetime) -> bool:
    expiry = expires_at(document)
    # An expiry beyond the last representable instant is always ahead of now.
    return expiry is None or expiry > now
