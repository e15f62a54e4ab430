"""
Tests for logging configuration and error payloads.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-L-01 | json_format=True | Normal | One JSON object per line on stderr | |
| TC-L-02 | LogContext | Normal | Bound keys present inside, gone after | |
| TC-L-03 | log_file | Normal | File receives the same events | |
| TC-X-01 | BrowserToolsError.to_dict | Normal | error_code / error / details | |
"""

import json
from pathlib import Path

from browser_tools.errors import NoMatchError, SessionNotRunningError
from browser_tools.utils.logging import LogContext, configure_logging, get_logger


def _json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


class TestConfigureLogging:
    def test_json_to_stderr(self, capsys):
        """TC-L-01"""
        configure_logging("INFO", json_format=True)

        get_logger("tests.logging").info("Browser started", pid=42)

        captured = capsys.readouterr()
        assert captured.out == ""
        events = _json_lines(captured.err)
        assert events[-1]["event"] == "Browser started"
        assert events[-1]["pid"] == 42
        assert events[-1]["level"] == "INFO"
        assert events[-1]["timestamp"].endswith("Z")

    def test_log_context(self, capsys):
        """TC-L-02"""
        configure_logging("INFO", json_format=True)
        logger = get_logger("tests.logging")

        with LogContext(command="search"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = _json_lines(capsys.readouterr().err)[-2:]
        assert inside["command"] == "search"
        assert "command" not in outside

    def test_log_file(self, tmp_path: Path, capsys):
        """TC-L-03"""
        log_file = tmp_path / "logs" / "browser-tools.log"
        configure_logging("DEBUG", log_file=log_file, json_format=True)

        get_logger("tests.logging").debug("Session record saved")

        assert "Session record saved" in log_file.read_text(encoding="utf-8")


class TestErrorPayload:
    def test_to_dict(self):
        """TC-X-01"""
        payload = NoMatchError("title", ["h3", "h3.LC20lb"]).to_dict()

        assert payload["error_code"] == "NO_MATCH"
        assert "no selector matched for 'title'" in payload["error"]
        assert payload["details"]["candidates"] == ["h3", "h3.LC20lb"]

    def test_without_details(self):
        payload = SessionNotRunningError().to_dict()

        assert payload == {
            "error_code": "SESSION_NOT_RUNNING",
            "error": "browser not running. Use 'start' first",
        }
