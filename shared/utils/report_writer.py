"""
Report writer: serializes scan results to CSV and/or JSON files.

Files are named ``<library>_scan_<region>_<timestamp>.<ext>``, with the
ISO timestamp's colons replaced so the name is valid on every filesystem.
"""
from __future__ import annotations

import csv
import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterable, Sequence

from config.constants import REPORT_COLUMNS, REPORT_FORMATS
from shared.models.entity import EntityRecord

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def file_timestamp(moment: datetime | None = None) -> str:
    current = moment or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    iso = current.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-")


def report_path(
    output_dir: str | Path,
    library_name: str,
    region: str,
    extension: str,
    moment: datetime | None = None,
) -> Path:
    safe_library = _UNSAFE_FILENAME_CHARS.sub("_", library_name).strip("_") or "library"
    return Path(output_dir) / f"{safe_library}_scan_{region}_{file_timestamp(moment)}.{extension}"


def write_csv(path: Path, records: Iterable[EntityRecord]) -> Path:
    """Write one row per record; absent values become empty cells."""
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=REPORT_COLUMNS, restval="", extrasaction="ignore")
        writer.writeheader()
        for record in records:
            writer.writerow(record.to_report_row())
    return path


def write_json(path: Path, records: Iterable[EntityRecord]) -> Path:
    """Write an indented JSON array; absent fields are omitted per record."""
    rows = [record.to_report_row() for record in records]
    path.write_text(json.dumps(rows, indent=2) + "\n", encoding="utf-8")
    return path


def write_report(
    records: Sequence[EntityRecord],
    *,
    library_name: str,
    region: str,
    formats: Sequence[str] = ("csv",),
    output_dir: str | Path = ".",
    moment: datetime | None = None,
) -> list[Path]:
    """Write *records* in every requested format and return the file paths."""
    unknown = [fmt for fmt in formats if fmt not in REPORT_FORMATS]
    if unknown:
        raise ValueError(f"Unsupported report format(s): {', '.join(unknown)}")

    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = moment or datetime.now(UTC)

    written: list[Path] = []
    for fmt in dict.fromkeys(formats):
        path = report_path(directory, library_name, region, fmt, stamp)
        if fmt == "json":
            written.append(write_json(path, records))
        else:
            written.append(write_csv(path, records))
    return written
