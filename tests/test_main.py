"""
CLI Entry Point Tests
=====================
End-to-end flow of main() with the GitLab client mocked.
"""
import logging
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import main
from flowforge.models.run_status import RunStatus

CSV_CONTENT = (
    "app_name,project_id,access_token,branch,variables\n"
    "api,1,tok-a,main,ENV=prod\n"
    "web,2,tok-b,,\n"
    "jobs,3,tok-c,main,\n"
)


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "pipelines.csv"
    path.write_text(CSV_CONTENT, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("main.setup_logging", return_value=logging.getLogger("flowforge.test")):
        yield


def _client_for(statuses):
    """Factory for mocked GitLabPipelineClient instances keyed by access token."""
    created = []

    def factory(access_token, **kwargs):
        client = MagicMock()
        client.trigger = AsyncMock(return_value=len(created) + 1)
        client.poll = AsyncMock(return_value=RunStatus.from_raw(statuses[access_token]))
        created.append(access_token)
        return client

    return factory, created


def test_parse_args_default():
    args = main.parse_args([])
    assert args.csv_path == main.PIPELINE_CSV_PATH


def test_parse_args_positional():
    assert main.parse_args(["custom.csv"]).csv_path == "custom.csv"


def test_all_pipelines_succeed(csv_file, tmp_path, capsys):
    factory, created = _client_for({"tok-a": "success", "tok-b": "success", "tok-c": "success"})
    report = tmp_path / "report.html"

    with patch("main.GitLabPipelineClient", side_effect=factory), \
         patch("main.HTML_REPORT_FILE", str(report)):
        exit_code = main.main([str(csv_file)])

    assert exit_code == 0
    assert created == ["tok-a", "tok-b", "tok-c"]
    out = capsys.readouterr().out
    assert "App Name: api" in out and "App Name: jobs" in out
    assert report.exists()


def test_failure_stops_and_still_reports(csv_file, tmp_path, capsys):
    factory, created = _client_for({"tok-a": "success", "tok-b": "failed", "tok-c": "success"})
    report = tmp_path / "report.html"

    with patch("main.GitLabPipelineClient", side_effect=factory), \
         patch("main.HTML_REPORT_FILE", str(report)):
        exit_code = main.main([str(csv_file)])

    assert exit_code == 1
    assert created == ["tok-a", "tok-b"]
    out = capsys.readouterr().out
    assert "App Name: web" in out
    assert "App Name: jobs" not in out
    assert "FAILED" in report.read_text(encoding="utf-8")


def test_missing_csv_generates_no_report(tmp_path):
    with patch("main.HtmlReportWriter") as mock_writer, \
         patch("main.print_cli_report") as mock_print:
        exit_code = main.main([str(tmp_path / "missing.csv")])

    assert exit_code == 1
    mock_writer.assert_not_called()
    mock_print.assert_not_called()


def test_no_valid_rows_generates_no_report(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("a,b,c,d,e\n,1,t,main,\nx,nan,t,main,\n", encoding="utf-8")

    with patch("main.HtmlReportWriter") as mock_writer, \
         patch("main.run_pipelines", new_callable=AsyncMock) as mock_run:
        exit_code = main.main([str(path)])

    assert exit_code == 1
    mock_run.assert_not_called()
    mock_writer.assert_not_called()
