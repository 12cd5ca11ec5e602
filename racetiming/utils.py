from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone

_SLUG_STRIP_RE = re.compile(r"[*+~.()'\"!:@]")
_SLUG_SEP_RE = re.compile(r"[^a-z0-9]+")


def slugify(value: str | None, fallback: str = "race-event") -> str:
    value = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    value = _SLUG_STRIP_RE.sub("", value.lower())
    value = _SLUG_SEP_RE.sub("-", value).strip("-")
    return value or fallback


def race_event_slug(event_name: str | None, start: datetime | None, today: datetime | None = None) -> str:
    year = start.year if start is not None else (today or datetime.utcnow()).year
    return f"{slugify(event_name)}-{year}"


def to_utc_naive(value: datetime | None) -> datetime | None:
    # Columns hold naive UTC; aware values are converted, naive ones taken as UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_comma_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
