"""
Response export to CSV and Excel.

Rows are flat dicts: fixed participant columns, then one column per
answered question, then (optionally) submission metadata.  By default the
participant column holds a stable pseudonym instead of the email, so the
same person lines up across exports without being identifiable.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from app.models import RESERVED_ANSWER_KEYS, ExportRequest, SurveyResponse
from app.services.credentials import anonymize

logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF6366F1")


def build_rows(
    responses: list[SurveyResponse],
    *,
    anonymized: bool = True,
    include_metadata: bool = True,
) -> list[dict[str, Any]]:
    rows = []
    for response in responses:
        row: dict[str, Any] = {
            "participant_id": anonymize(response.email) if anonymized else response.email,
            "group": response.group.value,
            "survey_version": response.version_label,
            "submitted_at": response.submitted_at.isoformat(),
            "is_partial": response.partial,
        }
        # Stored answers never overwrite the columns above or the metadata
        for key, value in response.responses.items():
            if key in RESERVED_ANSWER_KEYS:
                logger.warning("Response %d: answer key %r skipped in export", response.id, key)
                continue
            row[key] = value
        if include_metadata:
            row["completion_time"] = response.completion_time
            row["device_type"] = response.device_type
            row["submission_date"] = response.submitted_at.date().isoformat()
            row["submission_time"] = response.submitted_at.strftime("%H:%M:%S")
        rows.append(row)
    return rows


def _columns(rows: list[dict[str, Any]]) -> list[str]:
    """Union of keys in first-seen order (answer sets differ per group)."""
    columns: dict[str, None] = {}
    for row in rows:
        columns.update(dict.fromkeys(row))
    return list(columns)


def _cell(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def to_csv(rows: list[dict[str, Any]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_columns(rows), extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: _cell(v) for k, v in row.items()})
    return buf.getvalue()


def to_excel(responses: list[SurveyResponse], options: ExportRequest) -> bytes:
    """Workbook with export info, the responses and a per-group summary."""
    rows = build_rows(
        responses,
        anonymized=options.anonymize,
        include_metadata=options.include_metadata,
    )
    wb = Workbook()

    info = wb.active
    info.title = "Export Info"
    filters = options.model_dump(
        mode="json", include={"groups", "start", "end", "include_partial"}, exclude_none=True,
    )
    for label, value in (
        ("Export Generated", datetime.now(timezone.utc).isoformat()),
        ("Total Responses", len(rows)),
        ("Anonymized", "Yes" if options.anonymize else "No"),
        ("Include Metadata", "Yes" if options.include_metadata else "No"),
        ("Filters Applied", json.dumps(filters)),
    ):
        info.append([label, value])

    sheet = wb.create_sheet("Survey Responses")
    columns = _columns(rows)
    if columns:
        sheet.append(columns)
        for cell in sheet[1]:
            cell.font = Font(bold=True)
            cell.fill = _HEADER_FILL
        for row in rows:
            sheet.append([_cell(row.get(col)) for col in columns])
        for idx, col in enumerate(columns, start=1):
            sheet.column_dimensions[sheet.cell(row=1, column=idx).column_letter].width = max(len(col) + 2, 15)

    summary = wb.create_sheet("Group Summary")
    summary.append(["Group", "Response Count"])
    for group, count in Counter(r.group.value for r in responses).items():
        summary.append([group, count])

    buf = io.BytesIO()
    wb.save(buf)
    logger.info("Excel export built: %d rows, %d columns", len(rows), len(columns))
    return buf.getvalue()


def export_filename(fmt: str, today: datetime | None = None) -> str:
    today = today or datetime.now(timezone.utc)
    ext = "xlsx" if fmt == "excel" else "csv"
    return f"survey_responses_{today.date().isoformat()}.{ext}"
