"""CSV export of stored submissions for the submissions spreadsheet."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any, Sequence

from flowform.schemas.forms import DateField, FileField, Form, FormField, StoredSubmission
from flowform.utils.datetime_parsing import parse_iso_datetime

SUBMITTED_AT_HEADER = "Submitted At"


def format_utc_timestamp(value: datetime) -> str:
    """Render like en-US ``toLocaleString`` in UTC: ``1/15/2026, 3:05:09 PM``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return (
        f"{value.month}/{value.day}/{value.year}, "
        f"{hour}:{value.minute:02d}:{value.second:02d} {meridiem}"
    )


def _serialize_file_value(value: Any) -> str:
    if isinstance(value, dict):
        if value.get("filename"):
            return str(value["filename"])
        if value.get("url"):
            return str(value["url"])
    return str(value)


def _serialize_date_value(value: Any) -> str:
    if isinstance(value, datetime):
        return format_utc_timestamp(value)
    parsed = parse_iso_datetime(str(value))
    if parsed is None:
        return str(value)
    return format_utc_timestamp(parsed)


def serialize_cell(field: FormField, value: Any) -> str:
    if not value:
        return ""
    if isinstance(field, FileField):
        return _serialize_file_value(value)
    if isinstance(field, DateField):
        return _serialize_date_value(value)
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def submissions_to_csv(form: Form, submissions: Sequence[StoredSubmission]) -> str:
    """Header of field labels plus "Submitted At", one row per submission, in the given order.

    Cells containing a comma, quote, or newline are quoted with inner quotes doubled.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([field.label for field in form.fields] + [SUBMITTED_AT_HEADER])
    for submission in submissions:
        row = [serialize_cell(field, submission.responses.get(field.name)) for field in form.fields]
        row.append(format_utc_timestamp(submission.submitted_at))
        writer.writerow(row)
    return output.getvalue().removesuffix("\n")
