# src/taskdump/extraction/scanners.py

"""
Independent field scanners.

Each scanner is a pure function over the whole input line (keywords may
appear anywhere, case-insensitive). A scanner never consumes text for another
one and never raises: absence is reported as None / the default.

English and French vocabularies are both recognized.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date, timedelta

from ..tasks.task_models import Recurrence, RecurrenceKind

_I = re.IGNORECASE

# ---- date vocabulary ----

_TODAY_RE = re.compile(r"\btoday\b|\baujourd['’]?\s?hui\b", _I)
_DAY_AFTER_TOMORROW_RE = re.compile(
    r"\b(?:the\s+)?day\s+after\s+tomorrow\b|\bapr[eè]s[- ]?demain\b", _I
)
_TOMORROW_RE = re.compile(r"\btomorrow\b|\bdemain\b", _I)
_THIS_WEEK_RE = re.compile(
    r"\bthis\s+week\b|\bend\s+of\s+(?:the\s+)?week\b|\bcette\s+semaine\b|\bfin\s+de\s+semaine\b",
    _I,
)
_NEXT_WEEK_RE = re.compile(r"\bnext\s+week\b|\bsemaine\s+prochaine\b", _I)
_NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?\b")

# Python weekday numbers (Monday = 0). Scan order is list order, not text position.
WEEKDAYS: tuple[tuple[str, int], ...] = (
    ("monday", 0),
    ("tuesday", 1),
    ("wednesday", 2),
    ("thursday", 3),
    ("friday", 4),
    ("saturday", 5),
    ("sunday", 6),
    ("lundi", 0),
    ("lun", 0),
    ("mardi", 1),
    ("mar", 1),
    ("mercredi", 2),
    ("mer", 2),
    ("jeudi", 3),
    ("jeu", 3),
    ("vendredi", 4),
    ("ven", 4),
    ("samedi", 5),
    ("sam", 5),
    ("dimanche", 6),
    ("dim", 6),
)


# Three-letter French abbreviations are also English words ("dim", "mar", "sam"):
# they only count before a "." or a number, or at the end of the line.
def _weekday_pattern(name: str) -> str:
    if len(name) == 3:
        return rf"\b{name}(?:\.|(?=\s*\d)|\s*$)"
    return rf"\b{name}\b"


_WEEKDAY_RES = tuple((re.compile(_weekday_pattern(name), _I), wd) for name, wd in WEEKDAYS)
_ANY_WEEKDAY_RE = re.compile("|".join(_weekday_pattern(name) for name, _ in WEEKDAYS), _I)

_FRIDAY = 4
_MONDAY = 0

# @mentions and #tags are never date words ("@Sam" is not a Saturday).
_TAG_TOKEN_RE = re.compile(r"[@#][\w-]+")

# ---- urgency ----

URGENT_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "asap",
    "important",
    "critical",
    "priority",
    "deadline",
    "rush",
    "immediately",
    "priorité",
    "priorite",
    "critique",
    "vite",
    "rapidement",
    "immédiat",
    "immediat",
)
_BANG_RE = re.compile(r"!{2,}")
_URGENT_RE = re.compile(r"\b(?:" + "|".join(URGENT_KEYWORDS) + r")\b", _I)

# ---- duration ----

_DUR_HM_RE = re.compile(r"\b(\d+)\s*h\s*(\d{1,2})(?:\s*(?:min|mn|m)\b)?", _I)
_DUR_H_RE = re.compile(r"\b(\d+)\s*(?:h|hrs?|hours?|heures?)\b", _I)
_DUR_M_RE = re.compile(r"\b(\d+)\s*(?:min|mins|minutes?|mn)\b", _I)
_DUR_M_SHORT_RE = re.compile(r"\b(\d+)\s*m\b", _I)

# ---- time of day ----

_TIME_PREFIX = r"(?:\bà\s*|\bat\s+)?"
_TIME_AMPM_RE = re.compile(_TIME_PREFIX + r"\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?(?!\w)", _I)
_TIME_HM_RE = re.compile(_TIME_PREFIX + r"\b(\d{1,2})\s*h\s*(\d{2})\b", _I)
_TIME_H_RE = re.compile(_TIME_PREFIX + r"\b(\d{1,2})\s*h\b", _I)
_TIME_COLON_RE = re.compile(_TIME_PREFIX + r"\b(\d{1,2}):(\d{2})\b", _I)

# ---- recurrence ----

# Wire weekday numbers (Sunday = 0).
_RECUR_WEEKDAYS: tuple[tuple[str, str, int], ...] = (
    ("monday", "lundi", 1),
    ("tuesday", "mardi", 2),
    ("wednesday", "mercredi", 3),
    ("thursday", "jeudi", 4),
    ("friday", "vendredi", 5),
    ("saturday", "samedi", 6),
    ("sunday", "dimanche", 0),
)

_RECURRENCE_RULES: list[tuple[re.Pattern[str], Recurrence]] = [
    (
        re.compile(r"\bevery\s*day\b|\bdaily\b|\btous\s+les\s+jours\b|\bchaque\s+jour\b|\bquotidien(?:ne)?\b", _I),
        Recurrence(RecurrenceKind.DAILY),
    ),
]
for _en, _fr, _n in _RECUR_WEEKDAYS:
    _RECURRENCE_RULES.append(
        (
            re.compile(
                rf"\bevery\s+{_en}s?\b|\bon\s+{_en}s\b|\btous\s+les\s+{_fr}s\b|\bchaque\s+{_fr}\b",
                _I,
            ),
            Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, _n),
        )
    )
_RECURRENCE_RULES += [
    (
        re.compile(
            r"\bevery\s+week\b|\bweekly\b|\btoutes\s+les\s+semaines\b|\bchaque\s+semaine\b|\bhebdomadaire\b",
            _I,
        ),
        Recurrence(RecurrenceKind.WEEKLY),
    ),
    (
        re.compile(r"\bevery\s+month\b|\bmonthly\b|\btous\s+les\s+mois\b|\bchaque\s+mois\b|\bmensuel(?:le)?\b", _I),
        Recurrence(RecurrenceKind.MONTHLY),
    ),
]

# ---- project ----

_PROJECT_RE = re.compile(r"#([\w-]+)")

# ---- cleanup helpers ----

_LEAD_PUNCT_RE = re.compile(r"^[\s:,;.\-]+")
_TRAIL_PUNCT_RE = re.compile(r"[\s:,;.\-]+$")
_SPACES_RE = re.compile(r"\s+")


def _owner_mention_re(owner: str) -> re.Pattern[str]:
    return re.compile(rf"@{re.escape(owner)}(?!\w)", _I)


def _owner_prefix_re(owner: str) -> re.Pattern[str]:
    return re.compile(rf"^\s*{re.escape(owner)}\s*:\s*", _I)


def _add_days(d: date, n: int) -> str:
    return (d + timedelta(days=n)).isoformat()


def _days_until(d: date, weekday: int) -> int:
    """Offset to the next occurrence of weekday; never 0 (same day -> next week)."""
    return (weekday - d.weekday()) % 7 or 7


# --------------------------------------------------------------------------------------
# Scanners
# --------------------------------------------------------------------------------------


def parse_date(raw: str, reference: date) -> str:
    """Resolve the task date. Ordered, mutually exclusive rules; first match wins."""
    s = _TAG_TOKEN_RE.sub(" ", raw or "")

    if _TODAY_RE.search(s):
        return reference.isoformat()

    # "tomorrow" inside "day after tomorrow" belongs to the next rule.
    if _TOMORROW_RE.search(_DAY_AFTER_TOMORROW_RE.sub(" ", s)):
        return _add_days(reference, 1)

    if _DAY_AFTER_TOMORROW_RE.search(s):
        return _add_days(reference, 2)

    if _THIS_WEEK_RE.search(s):
        return _add_days(reference, _days_until(reference, _FRIDAY))

    if _NEXT_WEEK_RE.search(s):
        return _add_days(reference, _days_until(reference, _MONDAY))

    for rx, weekday in _WEEKDAY_RES:
        if rx.search(s):
            return _add_days(reference, _days_until(reference, weekday))

    m = _NUMERIC_DATE_RE.search(s)
    if m:
        year_raw = m.group(3)
        if year_raw is None:
            year = reference.year
        elif len(year_raw) == 2:
            year = 2000 + int(year_raw)
        else:
            year = int(year_raw)
        try:
            return date(year, int(m.group(2)), int(m.group(1))).isoformat()
        except ValueError:
            pass

    return reference.isoformat()


def parse_urgent(raw: str) -> bool:
    s = raw or ""
    return bool(_BANG_RE.search(s) or _URGENT_RE.search(s))


def parse_owner(raw: str, owners: Sequence[str], default_owner: str) -> str:
    """@mention beats "Name:" prefix beats default. Owner list order breaks ties."""
    s = raw or ""
    for owner in owners:
        if owner and _owner_mention_re(owner).search(s):
            return owner
    return _prefix_owner(s, owners) or default_owner


def parse_duration(raw: str) -> int | None:
    """Estimated duration in minutes."""
    s = raw or ""

    m = _DUR_HM_RE.search(s)
    if m:
        minutes = int(m.group(1)) * 60 + int(m.group(2))
        return minutes if minutes > 0 else None

    m = _DUR_H_RE.search(s)
    if m:
        minutes = int(m.group(1)) * 60
        return minutes if minutes > 0 else None

    for rx in (_DUR_M_RE, _DUR_M_SHORT_RE):
        m = rx.search(s)
        if m:
            minutes = int(m.group(1))
            return minutes if minutes > 0 else None

    return None


def _fmt_time(hh: int, mm: int) -> str | None:
    if 0 <= hh <= 23 and 0 <= mm <= 59:
        return f"{hh:02d}:{mm:02d}"
    return None


def parse_time(raw: str) -> str | None:
    """Time of day as HH:MM."""
    s = raw or ""

    m = _TIME_AMPM_RE.search(s)
    if m:
        hh = int(m.group(1))
        mm = int(m.group(2) or 0)
        if 1 <= hh <= 12:
            if m.group(3).lower() == "p" and hh != 12:
                hh += 12
            elif m.group(3).lower() == "a" and hh == 12:
                hh = 0
            out = _fmt_time(hh, mm)
            if out:
                return out

    for rx in (_TIME_HM_RE, _TIME_H_RE, _TIME_COLON_RE):
        m = rx.search(s)
        if not m:
            continue
        mm = int(m.group(2)) if m.lastindex and m.lastindex >= 2 else 0
        out = _fmt_time(int(m.group(1)), mm)
        if out:
            return out

    return None


def parse_recurrence(raw: str) -> Recurrence | None:
    s = raw or ""
    for rx, rule in _RECURRENCE_RULES:
        if rx.search(s):
            return rule
    return None


def parse_project(raw: str) -> str | None:
    m = _PROJECT_RE.search(raw or "")
    return m.group(1) if m else None


# --------------------------------------------------------------------------------------
# Title cleanup
# --------------------------------------------------------------------------------------

_MARKER_RES: tuple[re.Pattern[str], ...] = (
    # recurrence first: "every monday" must go as a whole
    *(rx for rx, _ in _RECURRENCE_RULES),
    _TODAY_RE,
    _DAY_AFTER_TOMORROW_RE,
    _TOMORROW_RE,
    _THIS_WEEK_RE,
    _NEXT_WEEK_RE,
    _ANY_WEEKDAY_RE,
    _NUMERIC_DATE_RE,
    # times before durations so "at 14h" loses its prefix too
    _TIME_AMPM_RE,
    _TIME_HM_RE,
    _TIME_H_RE,
    _TIME_COLON_RE,
    _DUR_HM_RE,
    _DUR_H_RE,
    _DUR_M_RE,
    _DUR_M_SHORT_RE,
    _BANG_RE,
    _URGENT_RE,
    _PROJECT_RE,
)


def _clean_once(title: str, owners: Sequence[str], *, strip_prefix: bool = True) -> str:
    # owners first: a name may also be a weekday abbreviation ("Sam")
    for owner in owners:
        if owner:
            title = _owner_mention_re(owner).sub(" ", title)

    if strip_prefix:
        for owner in owners:
            if owner:
                title = _owner_prefix_re(owner).sub("", title, count=1)

    for rx in _MARKER_RES:
        title = rx.sub(" ", title)

    title = _SPACES_RE.sub(" ", title)
    title = _LEAD_PUNCT_RE.sub("", title)
    title = _TRAIL_PUNCT_RE.sub("", title)
    return title.strip()


def _prefix_owner(raw: str, owners: Sequence[str]) -> str | None:
    """
    Owner named by a "Name:" prefix, as clean_title would see it.

    The prefix may sit behind leading markers or bullets ("tomorrow Marc: x",
    "- Marc: x"): each cleanup pass is checked, so the owner picked here is
    exactly the prefix clean_title drops.
    """
    title = str(raw or "")
    for _ in range(len(title) + 1):
        for owner in owners:
            if owner and _owner_prefix_re(owner).search(title):
                return owner
        cleaned = _clean_once(title, owners, strip_prefix=False)
        if cleaned == title:
            break
        title = cleaned
    return None


def clean_title(raw: str, owners: Sequence[str] = ()) -> str:
    """
    Remove every marker the scanners recognize, then tidy spaces/punctuation.

    Passes repeat until nothing changes, so the result is stable under
    re-application. A "Name:" prefix only becomes leading once the markers
    before it are gone ("tomorrow Marc: call" needs two passes).
    """
    title = str(raw or "")
    for _ in range(len(title) + 1):
        cleaned = _clean_once(title, owners)
        if cleaned == title:
            break
        title = cleaned
    return title
