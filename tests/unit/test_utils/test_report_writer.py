from __future__ import annotations

import csv
import json
from datetime import UTC, datetime

import pytest

from config.constants import REPORT_COLUMNS
from shared.models.entity import EntityRecord
from shared.utils.report_writer import file_timestamp, report_path, write_report

MOMENT = datetime(2021, 12, 14, 9, 30, 5, 123000, tzinfo=UTC)


def _records() -> list[EntityRecord]:
    return [
        EntityRecord(
            guid="A",
            account_id=1001,
            application_id=1,
            name="alpha",
            agent_version_range="7.4.0",
            examined_instance_count=2,
            library_name="log4j-core",
            library_version="2.14.1",
            library_sha1="a1",
            reporting_url="https://rpm.newrelic.com/accounts/1001/applications/1/environment",
        ),
        EntityRecord(guid="B", account_id=1001, name="bravo"),
    ]


def test_file_timestamp_is_filesystem_safe() -> None:
    assert file_timestamp(MOMENT) == "2021-12-14T09-30-05.123Z"


def test_report_path_sanitizes_library_name(tmp_path) -> None:
    path = report_path(tmp_path, "org/apache:log4j", "eu", "csv", MOMENT)

    assert path == tmp_path / "org_apache_log4j_scan_eu_2021-12-14T09-30-05.123Z.csv"


def test_csv_has_fixed_columns_and_blank_cells(tmp_path) -> None:
    (path,) = write_report(_records(), library_name="log4j-core", region="us", output_dir=tmp_path, moment=MOMENT)

    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        rows = list(reader)
    assert reader.fieldnames == REPORT_COLUMNS
    assert rows[0]["libraryVersion"] == "2.14.1"
    assert rows[0]["examinedInstances"] == "2"
    assert rows[1]["library"] == ""
    assert rows[1]["nrUrl"] == ""


def test_json_omits_absent_fields(tmp_path) -> None:
    (path,) = write_report(
        _records(), library_name="log4j-core", region="us", formats=["json"], output_dir=tmp_path, moment=MOMENT
    )

    rows = json.loads(path.read_text(encoding="utf-8"))
    assert rows[0]["librarySha1"] == "a1"
    assert "library" not in rows[1]


def test_both_formats_and_missing_directory_is_created(tmp_path) -> None:
    output_dir = tmp_path / "reports" / "today"

    paths = write_report(
        [], library_name="log4j-core", region="us", formats=["csv", "json", "csv"], output_dir=output_dir
    )

    assert [path.suffix for path in paths] == [".csv", ".json"]
    assert all(path.parent == output_dir for path in paths)
    assert json.loads(paths[1].read_text(encoding="utf-8")) == []


def test_unknown_format_is_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        write_report([], library_name="log4j-core", region="us", formats=["xml"], output_dir=tmp_path)
