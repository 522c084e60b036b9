"""Tests for the results exporter."""

from datetime import datetime

import orjson
import pytest

from invox.output import ResultsExporter, file_record
from invox.types import FileStatus, FileTask


@pytest.fixture
def files():
    return [
        FileTask(
            id="f1",
            file_name="a.pdf",
            stored_path="/s/f1.pdf",
            status=FileStatus.PROCESSED,
            parsed_details={"invoice_number": "1"},
            processed_at=datetime(2025, 1, 15, 12, 0),
        ),
        FileTask(
            id="f2",
            file_name="b.pdf",
            stored_path="/s/f2.pdf",
            status=FileStatus.FAILED,
            parsed_details={"error": "quota", "statusCode": 429},
        ),
    ]


class TestResultsExporter:
    """Tests for ResultsExporter.write."""

    def test_file_record(self, files):
        assert file_record(files[1]) == {
            "id": "f2",
            "fileName": "b.pdf",
            "status": "Failed",
            "processedAt": None,
            "data": {"error": "quota", "statusCode": 429},
        }

    def test_write_both(self, tmp_path, files):
        exporter = ResultsExporter(tmp_path)

        written = exporter.write(files, "both")

        assert [p.name for p in written] == ["results.ndjson", "results.json"]
        lines = written[0].read_bytes().splitlines()
        assert orjson.loads(lines[0])["processedAt"] == "2025-01-15T12:00:00"
        assert [r["id"] for r in orjson.loads(written[1].read_bytes())] == ["f1", "f2"]

    def test_unknown_format(self, tmp_path, files):
        with pytest.raises(ValueError):
            ResultsExporter(tmp_path).write(files, "xlsx")
