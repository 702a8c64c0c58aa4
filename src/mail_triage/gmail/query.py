"""Gmail search query builder."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

_DAYS_PATTERN = re.compile(r'^(\d+)\s*d(ays?)?$', re.IGNORECASE)

_RELATIVE_DAYS = {
    'last week': 7,
    'past week': 7,
    'last month': 30,
    'past month': 30,
    'last 3 days': 3,
}

_FALLBACK_DAYS = 7


@dataclass
class QueryFilters:
    """Structured filter set for a mailbox search.

    ``time_range`` accepts "today", "yesterday", "last week", "last month",
    "last 3 days" or "<N>d". ``is_unread`` is tri-state: None leaves read
    status out of the query.
    """

    query: Optional[str] = None
    time_range: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    subject: Optional[str] = None
    has_attachment: bool = False
    is_unread: Optional[bool] = None
    label: Optional[str] = None
    before: Optional[str] = None


def build_query(
    filters: Optional[QueryFilters] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Translate ``filters`` into a space-separated Gmail search string.

    Returns "in:inbox" when no filter is set. Only ``time_range`` depends on
    ``now`` (local time when omitted).
    """
    if filters is None:
        filters = QueryFilters()
    now = now or datetime.now()

    terms: List[str] = []
    if filters.query:
        terms.append(filters.query)
    if filters.time_range:
        terms.extend(_time_range(filters.time_range, now))
    if filters.sender:
        terms.append(_sender(filters.sender))
    if filters.recipient:
        terms.append(_recipient(filters.recipient))
    if filters.subject:
        terms.append(_subject(filters.subject))
    if filters.has_attachment:
        terms.append(_attachment())
    if filters.is_unread is not None:
        terms.append(_unread() if filters.is_unread else _read())
    if filters.label:
        terms.append(_label(filters.label))
    if filters.before:
        terms.append(_before(filters.before))

    return ' '.join(terms) or _in('inbox')


def format_date(value: date) -> str:
    """Gmail's YYYY/MM/DD date syntax."""
    return value.strftime('%Y/%m/%d')


def _time_range(token: str, now: datetime) -> List[str]:
    token = token.strip().lower()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if token == 'today':
        return [_after(format_date(today))]
    if token == 'yesterday':
        # Closed interval: everything from yesterday's midnight up to today's.
        yesterday = today - timedelta(days=1)
        return [_after(format_date(yesterday)), _before(format_date(today))]

    days = _RELATIVE_DAYS.get(token)
    if days is None:
        match = _DAYS_PATTERN.match(token)
        days = int(match.group(1)) if match else _FALLBACK_DAYS
    return [_after(format_date(now - timedelta(days=days)))]


def _sender(sender: str) -> str:
    return f'from:{sender}'


def _recipient(recipient: str) -> str:
    return f'to:{recipient}'


def _subject(subject: str) -> str:
    return f'subject:{subject}'


def _label(label: str) -> str:
    return f'label:{label}'


def _unread() -> str:
    return 'is:unread'


def _read() -> str:
    return 'is:read'


def _after(date_str: str) -> str:
    return f'after:{date_str}'


def _before(date_str: str) -> str:
    return f'before:{date_str}'


def _attachment() -> str:
    return 'has:attachment'


def _in(folder_name: str) -> str:
    return f'in:{folder_name}'
