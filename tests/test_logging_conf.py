import json
import logging
import sys

from repair_desk.logging_conf import JsonFormatter, configure_logging


class TestJsonFormatter:
    """Unit tests for JSON log lines"""

    def make_record(self, **extra):
        record = logging.LogRecord("repair_desk.api", logging.INFO, __file__, 1, "access_denied", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_extra_fields_are_top_level(self):
        """Test guard fields become JSON keys"""
        line = JsonFormatter().format(self.make_record(evt="guard", role="technician", status_code=403))

        payload = json.loads(line)
        assert payload["message"] == "access_denied"
        assert payload["service"] == "repair-desk"
        assert payload["logger"] == "repair_desk.api"
        assert payload["evt"] == "guard"
        assert payload["role"] == "technician"
        assert payload["status_code"] == 403
        assert "lineno" not in payload

    def test_exception_is_included(self):
        """Test exception text is attached"""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("repair_desk", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["exc"]

    def test_configure_logging_writes_file(self, tmp_path):
        """Test text logs go to the log file"""
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        log_file = tmp_path / "logs" / "backoffice.log"
        try:
            configure_logging("DEBUG", log_file=log_file)
            logging.getLogger("repair_desk.test").info("hello")
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved[0]:
                root.addHandler(handler)
            root.setLevel(saved[1])

        assert "repair_desk.test - INFO - hello" in log_file.read_text()
