"""Pattern classification of raw search queries.

The classifier only recognises shapes: email addresses, phone numbers, URLs,
timer durations and loose date/time hints. Anything that does not match is
reported as an absent flag rather than an error.
"""

import re
from dataclasses import dataclass
from typing import Optional


EMAIL_PATTERN = re.compile(r'^\S+@\S+$')
PHONE_PATTERN = re.compile(r'^\+?[0-9\- /.]{4,18}$')
URL_PATTERN = re.compile(
    r'^(https?://)?(www\.)?[-a-zA-Z0-9@:%._+~#=]{2,256}\.[a-z]{2,63}'
    r'(\b([-a-zA-Z0-9@:%_+.~#?&/=]*))?$',
    re.IGNORECASE
)
SCHEME_PATTERN = re.compile(r'^https?://', re.IGNORECASE)
DURATION_PATTERN = re.compile(
    r'^([0-9]+)\s?(s|sec|secs|second|seconds|m|min|mins|minute|minutes'
    r'|h|hr|hour|hours|d|day|days)$',
    re.IGNORECASE
)
DIGIT_PATTERN = re.compile(r'[0-9]')
DATE_KEYWORD_PATTERN = re.compile(
    r'\b(today|tomorrow|next|monday|tuesday|wednesday|thursday|friday'
    r'|saturday|sunday|am|pm)\b',
    re.IGNORECASE
)

# Minutes per duration unit
UNIT_MINUTES = {
    's': 1 / 60, 'sec': 1 / 60, 'secs': 1 / 60, 'second': 1 / 60, 'seconds': 1 / 60,
    'm': 1, 'min': 1, 'mins': 1, 'minute': 1, 'minutes': 1,
    'h': 60, 'hr': 60, 'hour': 60, 'hours': 60,
    'd': 1440, 'day': 1440, 'days': 1440,
}


@dataclass(frozen=True)
class QueryClassification:
    """Shape flags detected in a query."""
    is_email: bool = False
    is_phone: bool = False
    is_url: bool = False
    duration_minutes: Optional[float] = None
    has_date_time_hint: bool = False


def normalize_query(query: Optional[str]) -> str:
    """Trim and lower-case a query."""
    if not query:
        return ''
    return query.strip().lower()


def looks_like_url(text: str) -> bool:
    return bool(URL_PATTERN.match(text.strip()))


def to_url(text: str) -> str:
    """Return an absolute URL, defaulting to https."""
    value = text.strip()
    if SCHEME_PATTERN.match(value):
        return value
    return f"https://{value}"


def parse_duration_minutes(text: str) -> Optional[float]:
    """
    Parse a timer duration such as "10 min" or "2 hours".

    Returns:
        Duration in minutes, or None when the text is not a duration
    """
    match = DURATION_PATTERN.match(text.strip())
    if not match:
        return None

    amount = int(match.group(1))
    factor = UNIT_MINUTES.get(match.group(2).lower())
    if factor is None:
        return None

    return float(amount * factor)


def has_date_time_hint(text: str, duration_minutes: Optional[float] = None) -> bool:
    if duration_minutes is not None:
        return True
    if DIGIT_PATTERN.search(text):
        return True
    return bool(DATE_KEYWORD_PATTERN.search(text))


def classify(query: Optional[str]) -> QueryClassification:
    """Classify a query. Never raises; unmatched shapes are simply False/None."""
    text = normalize_query(query)
    if not text:
        return QueryClassification()

    duration = parse_duration_minutes(text)

    return QueryClassification(
        is_email=bool(EMAIL_PATTERN.match(text)),
        is_phone=bool(PHONE_PATTERN.match(text)),
        is_url=looks_like_url(text),
        duration_minutes=duration,
        has_date_time_hint=has_date_time_hint(text, duration),
    )
