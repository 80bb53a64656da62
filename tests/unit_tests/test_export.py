"""Tests for CSV / Excel export building."""

import csv
import io
from datetime import datetime, timezone

from openpyxl import load_workbook

from app.models import ExportRequest, StakeholderGroup
from app.services.credentials import anonymize
from app.services.export import build_rows, export_filename, to_csv, to_excel
from tests.mocks.models import PARTICIPANT_EMAIL, VALID_ANSWERS, make_response


class TestBuildRows:
    def test_anonymized_row(self):
        (row,) = build_rows([make_response()])
        assert row["participant_id"] == anonymize(PARTICIPANT_EMAIL)
        assert row["group"] == "Teachers"
        assert row["survey_version"] == "v1.0-Teachers"
        assert row["is_partial"] is False
        assert row["q2_confidence"] == 4
        assert row["completion_time"] == 420
        assert row["submission_date"] == "2026-03-02"
        assert row["submission_time"] == "09:30:00"

    def test_raw_email_without_metadata(self):
        (row,) = build_rows([make_response()], anonymized=False, include_metadata=False)
        assert row["participant_id"] == PARTICIPANT_EMAIL
        assert "completion_time" not in row
        assert "device_type" not in row

    def test_answers_cannot_overwrite_fixed_columns(self):
        forged = {**VALID_ANSWERS, "participant_id": "someone-else", "is_partial": True, "device_type": "x"}
        (row,) = build_rows([make_response(responses=forged)])
        assert row["participant_id"] == anonymize(PARTICIPANT_EMAIL)
        assert row["is_partial"] is False
        assert row["device_type"] == "desktop"
        assert row["q1_tech_use"] == VALID_ANSWERS["q1_tech_use"]


class TestCsv:
    def test_columns_are_union_of_answers(self):
        rows = build_rows([
            make_response(responses={"q1": "a"}),
            make_response(id=2, group=StakeholderGroup.STUDENTS, responses={"q9": "b"}),
        ], include_metadata=False)
        reader = csv.DictReader(io.StringIO(to_csv(rows)))
        assert reader.fieldnames[-2:] == ["q1", "q9"]
        first, second = list(reader)
        assert first["q1"] == "a" and first["q9"] == ""
        assert second["q9"] == "b"

    def test_nested_answers_serialized_as_json(self):
        rows = build_rows([make_response(responses={"q1": ["x", "y"]})], include_metadata=False)
        (row,) = list(csv.DictReader(io.StringIO(to_csv(rows))))
        assert row["q1"] == '["x", "y"]'


class TestExcel:
    def test_workbook_layout(self):
        responses = [
            make_response(),
            make_response(id=2, group=StakeholderGroup.STUDENTS),
            make_response(id=3),
        ]
        wb = load_workbook(io.BytesIO(to_excel(responses, ExportRequest(format="excel"))))
        assert wb.sheetnames == ["Export Info", "Survey Responses", "Group Summary"]

        info = {r[0]: r[1] for r in wb["Export Info"].iter_rows(values_only=True)}
        assert info["Total Responses"] == 3
        assert info["Anonymized"] == "Yes"

        header = wb["Survey Responses"][1]
        assert header[0].value == "participant_id"
        assert header[0].font.bold
        assert wb["Survey Responses"].max_row == 4

        summary = dict(wb["Group Summary"].iter_rows(min_row=2, values_only=True))
        assert summary == {"Teachers": 2, "Students": 1}

    def test_group_summary_ignores_answer_keys(self):
        responses = [
            make_response(responses={**VALID_ANSWERS, "group": ["x"]}),
            make_response(id=2, group=StakeholderGroup.STUDENTS),
        ]
        wb = load_workbook(io.BytesIO(to_excel(responses, ExportRequest(format="excel"))))
        summary = dict(wb["Group Summary"].iter_rows(min_row=2, values_only=True))
        assert summary == {"Teachers": 1, "Students": 1}
        assert wb["Survey Responses"]["B2"].value == "Teachers"


def test_export_filename():
    day = datetime(2026, 4, 9, tzinfo=timezone.utc)
    assert export_filename("csv", day) == "survey_responses_2026-04-09.csv"
    assert export_filename("excel", day) == "survey_responses_2026-04-09.xlsx"
