"""Rule-based interpretation of free-text search queries.

`parse_query` pulls structured hints (tags, type, author, price bounds, date
ranges) out of the raw string and returns the rest as residual terms. Rules
are applied until a full pass extracts nothing more, so parsing the residual
again yields the same residual.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from synapse.models.vocab import normalize_content_type
from synapse.util.time import now_utc


@dataclass
class QueryFilters:
    residual: str = ""
    type: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    tags: list[str] = field(default_factory=list)
    author: str | None = None
    price_min: float | None = None
    price_max: float | None = None

    @property
    def has_price_bounds(self) -> bool:
        return self.price_min is not None or self.price_max is not None

    def to_dict(self) -> dict:
        d = asdict(self)
        for k in ("date_from", "date_to"):
            if d[k] is not None:
                d[k] = d[k].isoformat()
        return d


_NUM = r"(\d+(?:\.\d+)?)"
_MONEY = rf"(?:\$\s*{_NUM}|{_NUM}\s*(?:dollars|usd|bucks)\b)"

TYPE_WORDS = {
    "video": "video",
    "videos": "video",
    "book": "book",
    "books": "book",
    "recipe": "recipe",
    "recipes": "recipe",
    "note": "note",
    "notes": "note",
    "image": "image",
    "images": "image",
    "photo": "image",
    "photos": "image",
    "article": "blog",
    "articles": "blog",
    "blog": "blog",
    "blogs": "blog",
    "product": "amazon",
    "products": "amazon",
}
_TYPE_WORD_RE = re.compile(r"\b(" + "|".join(sorted(TYPE_WORDS, key=len, reverse=True)) + r")\b", re.IGNORECASE)

_UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _money(m: re.Match, first_group: int) -> float:
    a, b = m.group(first_group), m.group(first_group + 1)
    return float(a if a is not None else b)


def _day_start(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _day_end(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)


def _parse_iso_day(s: str) -> datetime | None:
    try:
        return datetime.strptime(s, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _month_start(dt: datetime) -> datetime:
    return _day_start(dt.replace(day=1))


def _prev_month_start(dt: datetime) -> datetime:
    first = _month_start(dt)
    return _month_start(first - timedelta(days=1))


def _set_range(f: QueryFilters, start: datetime | None, end: datetime | None) -> None:
    # First date phrase wins.
    if f.date_from is None and f.date_to is None:
        f.date_from, f.date_to = start, end


# --- rule handlers -----------------------------------------------------------
# Each handler returns True if the match was consumed (and is removed from the
# residual), False to leave the text in place.

Handler = Callable[[re.Match, QueryFilters, datetime], bool]


def _h_tags(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    for raw in m.group(1).split(","):
        tag = raw.strip().lstrip("#").lower()
        if tag and tag not in f.tags:
            f.tags.append(tag)
    return True


def _h_hashtag(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    tag = m.group(1).lower()
    if tag not in f.tags:
        f.tags.append(tag)
    return True


def _h_type(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    t = normalize_content_type(m.group(1))
    if not t:
        return False
    f.type = f.type or t
    return True


def _h_author_explicit(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    name = (m.group(1) or m.group(2) or "").strip()
    if not name:
        return False
    f.author = f.author or name
    return True


def _h_author_by(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    f.author = f.author or m.group(1).strip()
    return True


def _h_price_between(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    lo, hi = float(m.group(1)), float(m.group(2))
    if lo > hi:
        lo, hi = hi, lo
    if f.price_min is None:
        f.price_min = lo
    if f.price_max is None:
        f.price_max = hi
    return True


def _h_price_max(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    if f.price_max is None:
        f.price_max = _money(m, 1)
    return True


def _h_price_min(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    if f.price_min is None:
        f.price_min = _money(m, 1)
    return True


def _h_price_op(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    value = float(m.group(2))
    if m.group(1).startswith("<"):
        if f.price_max is None:
            f.price_max = value
    elif f.price_min is None:
        f.price_min = value
    return True


def _h_since(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    day = _parse_iso_day(m.group(1))
    if day is None:
        return False
    if f.date_from is None:
        f.date_from = day
    return True


def _h_before(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    day = _parse_iso_day(m.group(2))
    if day is None:
        return False
    if f.date_to is None:
        if m.group(1).lower() == "until":
            f.date_to = _day_end(day)
        else:
            f.date_to = day if day == _EARLIEST else day - timedelta(microseconds=1)
    return True


def _h_last_n(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    n = int(m.group(1))
    # Spans reaching past year 1 are clamped to the earliest representable day.
    days = min(n * _UNIT_DAYS[m.group(2).lower()], (now - _EARLIEST).days)
    _set_range(f, now - timedelta(days=days), None)
    return True


def _h_today(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    _set_range(f, _day_start(now), None)
    return True


def _h_yesterday(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    y = now - timedelta(days=1)
    _set_range(f, _day_start(y), _day_end(y))
    return True


def _h_calendar(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    which, unit = m.group(1).lower(), m.group(2).lower()
    if unit == "week":
        start = _day_start(now - timedelta(days=now.weekday()))
        if which == "last":
            _set_range(f, start - timedelta(days=7), start - timedelta(microseconds=1))
        else:
            _set_range(f, start, None)
    elif unit == "month":
        start = _month_start(now)
        if which == "last":
            _set_range(f, _prev_month_start(now), start - timedelta(microseconds=1))
        else:
            _set_range(f, start, None)
    else:
        start = _day_start(now.replace(month=1, day=1))
        if which == "last":
            _set_range(f, start.replace(year=start.year - 1), start - timedelta(microseconds=1))
        else:
            _set_range(f, start, None)
    return True


def _h_in_year(m: re.Match, f: QueryFilters, now: datetime) -> bool:
    year = int(m.group(1))
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    _set_range(f, start, datetime(year + 1, 1, 1, tzinfo=timezone.utc) - timedelta(microseconds=1))
    return True


_REL = r"(?:(?:from|during|in|since|within)\s+)?(?:the\s+)?"

RULES: list[tuple[re.Pattern, Handler]] = [
    (re.compile(r"(?<!\S)tags?:\s*([^\s,]+(?:\s*,\s*[^\s,]+)*)", re.IGNORECASE), _h_tags),
    (re.compile(r"(?<![\w#&])#([A-Za-z0-9][\w-]*)"), _h_hashtag),
    (re.compile(r"(?<!\S)type:\s*(\w+)", re.IGNORECASE), _h_type),
    (re.compile(r"(?<!\S)author:\s*(?:\"([^\"]+)\"|(\S+))", re.IGNORECASE), _h_author_explicit),
    (re.compile(r"\b[Bb]y\s+([A-Z][\w.'-]*(?:\s+[A-Z][\w.'-]*){0,3})"), _h_author_by),
    (
        re.compile(rf"\bbetween\s+\$\s*{_NUM}\s+(?:and|to)\s+\$?\s*{_NUM}", re.IGNORECASE),
        _h_price_between,
    ),
    (re.compile(rf"\${_NUM}\s*-\s*\$?{_NUM}"), _h_price_between),
    (
        re.compile(rf"\b(?:under|below|less\s+than|cheaper\s+than|at\s+most)\s+{_MONEY}", re.IGNORECASE),
        _h_price_max,
    ),
    (
        re.compile(rf"\b(?:over|above|more\s+than|at\s+least)\s+{_MONEY}", re.IGNORECASE),
        _h_price_min,
    ),
    (re.compile(rf"(?<!\S)price\s*:\s*([<>]=?)\s*\$?{_NUM}", re.IGNORECASE), _h_price_op),
    (re.compile(r"\b(?:from|since|after)\s+(\d{4}-\d{2}-\d{2})\b", re.IGNORECASE), _h_since),
    (re.compile(r"\b(before|until)\s+(\d{4}-\d{2}-\d{2})\b", re.IGNORECASE), _h_before),
    (re.compile(rf"\b{_REL}(?:last|past)\s+(\d+)\s+(day|week|month|year)s?\b", re.IGNORECASE), _h_last_n),
    (re.compile(rf"\b{_REL}(this|last)\s+(week|month|year)\b", re.IGNORECASE), _h_calendar),
    (re.compile(r"\b(?:(?:from|since|on)\s+)?today\b", re.IGNORECASE), _h_today),
    (re.compile(r"\b(?:(?:from|since|on)\s+)?yesterday\b", re.IGNORECASE), _h_yesterday),
    (re.compile(r"\b(?:in|from|during)\s+((?:19|20)\d{2})\b", re.IGNORECASE), _h_in_year),
]


def _normalize(s: str) -> str:
    return " ".join(s.split())


def _apply_rules(text: str, f: QueryFilters, now: datetime) -> str:
    for pattern, handler in RULES:

        def repl(m: re.Match, handler: Handler = handler) -> str:
            return " " if handler(m, f, now) else m.group(0)

        text = pattern.sub(repl, text)
    return text


def parse_query(raw: str, now: datetime | None = None) -> QueryFilters:
    now = now or now_utc()
    f = QueryFilters()
    text = _normalize(raw or "")
    # Every consumed match shortens the text, so this reaches a fixpoint.
    while True:
        nxt = _normalize(_apply_rules(text, f, now))
        if nxt == text:
            break
        text = nxt
    f.residual = text

    if f.type is None:
        m = _TYPE_WORD_RE.search(text)
        if m:
            f.type = TYPE_WORDS[m.group(1).lower()]
    return f
