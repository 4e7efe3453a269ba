"""Unit tests for platform family detection and logging setup. / 平台族检测与日志配置单元测试。"""

import logging
import sys

import psutil

from osprobe.core.platform_family import PlatformFamily, current_platform
from osprobe.runtime.log_config import setup_logger


class TestCurrentPlatform:
    def test_returns_family(self):
        assert isinstance(current_platform(), PlatformFamily)

    def test_matches_interpreter(self):
        family = current_platform()
        if sys.platform.startswith("linux"):
            assert family is PlatformFamily.LINUX
        elif sys.platform == "win32":
            assert family is PlatformFamily.WINDOWS
        elif sys.platform == "darwin":
            assert family is PlatformFamily.MACOS

    def test_other_when_no_flag_set(self, monkeypatch):
        monkeypatch.setattr(psutil, "LINUX", False)
        monkeypatch.setattr(psutil, "WINDOWS", False)
        monkeypatch.setattr(psutil, "MACOS", False)
        assert current_platform() is PlatformFamily.OTHER


class TestSetupLogger:
    def test_console_only(self):
        logger = setup_logger("osprobe.test.console", level=logging.WARNING)
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING
        assert logger.propagate is False

    def test_no_duplicate_handlers(self):
        setup_logger("osprobe.test.dup")
        logger = setup_logger("osprobe.test.dup")
        assert len(logger.handlers) == 1

    def test_file_handler_gets_debug(self, tmp_path):
        log_file = tmp_path / "logs" / "probe.log"
        logger = setup_logger("osprobe.test.file", level=logging.INFO, log_file=str(log_file))
        logger.debug("hidden from console")
        for h in logger.handlers:
            h.flush()
        assert "hidden from console" in log_file.read_text()
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)
