"""
Pipeline Config Reader
======================
Reads the pipeline CSV and turns each data row into a PipelineRequest.

CSV Layout (first row is a header, column order is fixed):
    app name, project id, access token, branch, variables

Row handling:
    - Header missing or shorter than 5 columns  → ConfigFileError (fatal)
    - Row shorter than 5 columns                → skipped, warning
    - Missing app name / project id / token     → skipped, error
    - Non-numeric project id                    → skipped, error
    - Blank branch                              → "main"

Every data row yields a RowResult, so callers (and tests) can see why a row
was dropped instead of losing it to a swallowed exception.
"""
import csv
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError

from flowforge.core.config import EXPECTED_COLUMN_COUNT
from flowforge.models.pipeline_request import PipelineRequest

logger = logging.getLogger(__name__)

APP_NAME_INDEX = 0
PROJECT_ID_INDEX = 1
ACCESS_TOKEN_INDEX = 2
BRANCH_NAME_INDEX = 3
VARIABLES_INDEX = 4


class ConfigFileError(Exception):
    """The CSV file cannot be used at all (unreadable, bad header)."""


@dataclass
class RowResult:
    """Outcome of parsing one data row: a request, or the reason it was skipped."""
    line_number: int
    request: Optional[PipelineRequest] = None
    skip_reason: str = ""

    @property
    def ok(self) -> bool:
        return self.request is not None


def _column(row: Sequence[str], index: int) -> str:
    return row[index].strip() if len(row) > index and row[index] is not None else ""


def _validation_reason(exc: ValidationError) -> str:
    first = exc.errors()[0]
    return str(first.get("msg", exc)).removeprefix("Value error, ")


def parse_row(row: Sequence[str], line_number: int) -> RowResult:
    """Validate one CSV row. Never raises for bad content."""
    if len(row) < EXPECTED_COLUMN_COUNT:
        return RowResult(
            line_number=line_number,
            skip_reason=f"fewer columns than expected ({len(row)} < {EXPECTED_COLUMN_COUNT})",
        )

    app_name = _column(row, APP_NAME_INDEX)
    project_id = _column(row, PROJECT_ID_INDEX)
    access_token = _column(row, ACCESS_TOKEN_INDEX)

    if not app_name:
        return RowResult(line_number=line_number, skip_reason="App name is required")
    if not project_id:
        return RowResult(line_number=line_number, skip_reason="Project ID is required")
    if not access_token:
        return RowResult(line_number=line_number, skip_reason="Access token is required")
    if not (project_id.isascii() and project_id.isdigit()):
        return RowResult(line_number=line_number, skip_reason="Project ID must be a number")

    try:
        request = PipelineRequest(
            app_name=app_name,
            project_id=project_id,
            credential=access_token,
            branch=_column(row, BRANCH_NAME_INDEX),
            variables_string=_column(row, VARIABLES_INDEX),
        )
    except ValidationError as exc:
        return RowResult(line_number=line_number, skip_reason=_validation_reason(exc))

    return RowResult(line_number=line_number, request=request)


def read_config_rows(
    rows: Iterable[Sequence[str]],
    log: Optional[logging.Logger] = None,
) -> List[RowResult]:
    """
    Parse header + data rows into RowResults, preserving input order.

    Raises ConfigFileError if the header row is missing or too short.
    Fully blank lines are ignored and produce no RowResult.
    """
    log = log or logger
    iterator = iter(rows)
    header = next(iterator, None)
    if header is None or len(header) < EXPECTED_COLUMN_COUNT:
        raise ConfigFileError("CSV file header is missing or has incorrect format")

    results: List[RowResult] = []
    line_number = 1  # header
    for row in iterator:
        line_number += 1
        if not any((cell or "").strip() for cell in row):
            continue

        result = parse_row(row, line_number)
        if result.ok:
            log.debug("Added pipeline config for app: %s", result.request.app_name)
        elif len(row) < EXPECTED_COLUMN_COUNT:
            log.warning("Line %d skipped: %s", line_number, result.skip_reason)
        else:
            log.error("Error parsing line %d: %s", line_number, result.skip_reason)
        results.append(result)
    return results


def load_pipeline_requests(
    file_path: str,
    log: Optional[logging.Logger] = None,
) -> List[PipelineRequest]:
    """
    Read the CSV file at file_path and return the valid requests in file order.

    Raises ConfigFileError when the file cannot be read or parsed.
    """
    log = log or logger
    log.info("Starting to parse CSV file: %s", file_path)

    try:
        with open(file_path, newline="", encoding="utf-8-sig") as handle:
            results = read_config_rows(csv.reader(handle), log=log)
    except OSError as exc:
        raise ConfigFileError(f"Cannot read CSV file {file_path}: {exc}") from exc
    except (csv.Error, UnicodeDecodeError) as exc:
        raise ConfigFileError(f"Error validating CSV file: {exc}") from exc

    requests = [r.request for r in results if r.ok]
    skipped = len(results) - len(requests)
    log.info(
        "CSV parsing completed. Found %d valid pipeline configurations (%d skipped)",
        len(requests), skipped,
    )
    return requests
