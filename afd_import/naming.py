"""Date formats, file names and object keys used by the import pipeline."""

from datetime import date, datetime, timezone
from typing import Optional, Union


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def parse_reference_date(value: Optional[Union[str, date, datetime]]) -> date:
    """Coerce a reference date; None means today (UTC).

    Accepts a date, a datetime (converted to its UTC calendar day) or an ISO
    8601 string such as "2024-03-01" or "2024-03-01T10:00:00Z".
    """
    if value is None:
        return today_utc()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        return parse_reference_date(datetime.fromisoformat(text.replace("Z", "+00:00")))


def format_file_date(value: date) -> str:
    """DD-MM-YYYY, as used in AFD file names."""
    return value.strftime("%d-%m-%Y")


def afd_file_name(reference_date: date, device_name: str) -> str:
    """Name of the archived AFD: `DD-MM-YYYY <deviceName>.txt`."""
    return f"{format_file_date(reference_date)} {device_name}.txt"


def archive_key(job_id: int, file_name: str) -> str:
    """Object key of the per-job copy of an AFD."""
    return f"importacoes/{job_id}/{file_name}"


def log_archive_key(job_id: int, log_name: str) -> str:
    """Object key of an archived ERP execution log."""
    return f"importacoes/{job_id}/logs/{log_name}"


def normalize_feed(content: str) -> str:
    """Turn literal `\\r\\n` escape sequences in a downloaded feed into newlines."""
    return content.replace("\\r\\n", "\n")
