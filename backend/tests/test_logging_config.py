"""日志配置"""

import logging
from datetime import date

import pytest

from app.core.config import settings
from app.core.logging_config import daily_log_path, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:

    def test_daily_log_path(self, tmp_path):
        assert daily_log_path(tmp_path, "app", date(2026, 10, 19)) == tmp_path / "app_2026-10-19.log"

    def test_writes_daily_files(self, tmp_path, restore_root_logger):
        log_dir = tmp_path / "logs"
        setup_logging("info", log_dir=log_dir, to_file=True)

        logging.getLogger("app.test").error("批次 1 库存不足")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert "批次 1 库存不足" in daily_log_path(log_dir, "app").read_text(encoding="utf-8")
        assert "批次 1 库存不足" in daily_log_path(log_dir, "error").read_text(encoding="utf-8")

    def test_defaults_from_settings(self, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.setattr(settings, "LOG_LEVEL", "WARNING")
        monkeypatch.setattr(settings, "LOG_DIR", tmp_path)
        monkeypatch.setattr(settings, "LOG_TO_FILE", False)

        setup_logging()

        assert restore_root_logger.level == logging.WARNING
        assert not any(isinstance(h, logging.FileHandler) for h in restore_root_logger.handlers)
        assert list(tmp_path.iterdir()) == []
