"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GITLAB_URL               — GitLab instance base URL (default: https://gitlab.com)
    PIPELINE_CSV_PATH        — CSV file read when no path is given on the CLI (default: pipelines.csv)
    POLLING_INTERVAL_SECONDS — Wait between two pipeline status checks (default: 10)
    PIPELINE_POLL_TIMEOUT    — Max seconds to wait for one pipeline, 0 = no limit (default: 0)
    HTTP_TIMEOUT_SECONDS     — Timeout of a single GitLab API request (default: 20)
    HTML_REPORT_FILE         — Output path of the HTML report (default: flow-forge-report.html)
    LOG_LEVEL                — Logging level name (default: INFO)
    LOG_DIR                  — Directory for the daily log file (default: logs)

Polling Philosophy:
    A pipeline is polled until it reaches a terminal status. Without
    PIPELINE_POLL_TIMEOUT the wait is unbounded, so a stuck pipeline blocks
    every pipeline queued behind it. Set a ceiling for unattended runs.
"""
import os
from dotenv import load_dotenv

load_dotenv()

GITLAB_URL = os.getenv("GITLAB_URL", "https://gitlab.com").rstrip("/")
PIPELINE_CSV_PATH = os.getenv("PIPELINE_CSV_PATH", "pipelines.csv")

POLLING_INTERVAL_SECONDS = float(os.getenv("POLLING_INTERVAL_SECONDS", 10))
PIPELINE_POLL_TIMEOUT = float(os.getenv("PIPELINE_POLL_TIMEOUT", 0))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 20))

HTML_REPORT_FILE = os.getenv("HTML_REPORT_FILE", "flow-forge-report.html")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Minimum number of CSV columns: app name, project id, token, branch, variables
EXPECTED_COLUMN_COUNT = 5
DEFAULT_BRANCH = "main"
