"""
Logging setup tests
"""
import logging
from logging.handlers import RotatingFileHandler

from log_setup import setup_logging


def test_console_and_file(tmp_path):
    log_file = tmp_path / "logs" / "ledger.log"
    root = setup_logging("debug", str(log_file))
    try:
        assert root.level == logging.DEBUG
        assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
        logging.getLogger("store").info("hello")
        for h in root.handlers:
            h.flush()
        assert "| INFO     | store | hello" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger("openpyxl").level == logging.WARNING
    finally:
        for h in root.handlers:
            h.close()
        root.handlers.clear()


def test_unknown_level_falls_back_to_info():
    root = setup_logging("LOUD")
    try:
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
    finally:
        root.handlers.clear()
