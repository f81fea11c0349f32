from __future__ import annotations

from datetime import datetime
import re

UNKNOWN_SEGMENT = "Unknown"

PATH_HOSTILE_RE = re.compile(r'[/\\:*?"<>|#%\x00-\x1f]')

# Google Sheets writes form timestamps in the sheet locale; these are the
# US-style shapes it emits by default.
SHEET_TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)


def safe_text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def sanitize_path_segment(value: object) -> str:
    cleaned = PATH_HOSTILE_RE.sub("-", safe_text(value)).strip()
    return cleaned or UNKNOWN_SEGMENT


def format_date_for_filename(value: datetime) -> str:
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"_{value.hour:02d}{value.minute:02d}"
    )


def parse_submission_timestamp(raw: object) -> datetime | None:
    """Parse a submission timestamp cell.

    The parsed value keeps whatever offset the text carried; callers format
    its own calendar fields so replays reproduce the original file names.
    """
    if isinstance(raw, datetime):
        return raw
    text = safe_text(raw).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    for fmt in SHEET_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
