"""
Test configuration: add project root to sys.path for package imports.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture
def data_file():
    """Return the path of a report under tests/data."""
    def _data_file(name: str) -> Path:
        return DATA_DIR / name
    return _data_file


@pytest.fixture
def write_report(tmp_path):
    """Write report text to a temporary file and return its path."""
    def _write(text: str, name: str = "report.xml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch, tmp_path):
    """Keep the developer's environment and .env out of the tests."""
    for key in ("KEEP_LONG_STDIO", "STDIO_LIMIT", "JUNIT_REPORT_DIALECTS",
                "FASTMCP_PORT", "JUNIT_REPORT_ANALYZER_CONFIG"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
