"""Parses Pulse's plain-text report into findings."""

from __future__ import annotations

import re
from pathlib import Path

from pulsegen.core.errors import ReportMalformed, ReportUnavailable
from pulsegen.core.models import NO_VIOLATIONS, AnalysisResult, Finding

RECORD_DELIMITER = "#"

# <file>:<line>: error: <description>, description running to the end of the record
_RECORD_RE = re.compile(
    r"(?P<file>[^\s:][^:\n]*?):(?P<line>\d+): error: (?P<description>.+)\Z",
    re.DOTALL,
)

# Infer appends an issue-count summary after the last record; its
# "Issue Type(ISSUED_TYPE_ID): #" header line contains the delimiter.
_SUMMARY_RE = re.compile(r"^[ \t]*(?:Found \d+ issues?|No issues found)\b.*\Z", re.MULTILINE | re.DOTALL)


def parse_record(record: str) -> Finding:
    """Parse one record; records that don't match are kept verbatim."""
    text = record.strip()
    match = _RECORD_RE.search(text)
    if match:
        line = int(match.group("line"))
        if line > 0:
            return Finding(
                file=match.group("file"),
                line=line,
                description=match.group("description").strip(),
                raw=text,
            )
    return Finding(description=text, raw=text)


def parse_report_text(text: str, delimiter: str = RECORD_DELIMITER) -> AnalysisResult:
    summary = _SUMMARY_RE.search(text)
    if summary:
        text = text[: summary.start()]
    if not text.strip():
        return NO_VIOLATIONS

    records = [r for r in text.split(delimiter) if r.strip()]
    if not records:
        raise ReportMalformed("Report is not empty but contains no records")

    return tuple(parse_record(r) for r in records)


def parse_report(path: Path, delimiter: str = RECORD_DELIMITER) -> AnalysisResult:
    """Turn a report file into ``NO_VIOLATIONS`` or a tuple of findings.

    A missing file means the analyzer never produced a report, which is not
    the same as a clean run.
    """
    if not path.is_file():
        raise ReportUnavailable(f"No analyzer report at {path}; the candidate may have failed to build")

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ReportMalformed(f"Report {path} is not valid UTF-8 text") from e

    return parse_report_text(text, delimiter)
