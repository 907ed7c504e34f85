"""
Tests for diagnostics sinks and logging setup
"""
import logging

import pytest

import config
from services.removal.diagnostics import (
    LOGGER_NAME,
    LoggingDiagnostics,
    NullDiagnostics,
    default_diagnostics,
    sanitize_meta,
    setup_logging,
)


@pytest.fixture
def logger():
    return logging.getLogger("test_removal.diagnostics")


class TestSanitizeMeta:
    """Tests for sanitize_meta"""

    def test_empty(self):
        assert sanitize_meta(None) is None
        assert sanitize_meta({}) is None

    def test_scalars_kept(self):
        """Test numbers, bools and None pass through"""
        meta = {"a": 1, "b": 2.5, "c": True, "d": None}

        assert sanitize_meta(meta) == meta

    def test_long_string_truncated(self):
        """Test a base64 payload can't flood the log"""
        out = sanitize_meta({"image": "A" * 5000})

        assert len(out["image"]) < 700
        assert out["image"].endswith("...(+4400)")

    def test_list_capped(self):
        """Test long lists are cut"""
        assert len(sanitize_meta({"items": list(range(100))})["items"]) == 20

    def test_dict_serialized(self):
        """Test nested dicts become JSON strings"""
        assert sanitize_meta({"target": {"width": 64}})["target"] == '{"width": 64}'


class TestLoggingDiagnostics:
    """Tests for LoggingDiagnostics"""

    def test_log_event(self, logger, caplog):
        """Test events are written with scope and JSON metadata"""
        diagnostics = LoggingDiagnostics(logger, scope="pipeline")

        with caplog.at_level(logging.INFO, logger=logger.name):
            diagnostics.log("export:target", {"width": 64})

        assert caplog.records[-1].getMessage() == '[pipeline] export:target {"width": 64}'
        assert caplog.records[-1].levelno == logging.INFO

    def test_levels(self, logger, caplog):
        """Test warn and error map to logging levels"""
        diagnostics = LoggingDiagnostics(logger)

        with caplog.at_level(logging.INFO, logger=logger.name):
            diagnostics.warn("w")
            diagnostics.error("e")

        assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.ERROR]
        assert caplog.records[0].getMessage() == "[removal] w"

    def test_child_scope(self, logger, caplog):
        """Test child sinks share the logger"""
        child = LoggingDiagnostics(logger, scope="pipeline").child("client")

        with caplog.at_level(logging.INFO, logger=logger.name):
            child.log("request:start")

        assert caplog.records[-1].getMessage() == "[client] request:start"

    def test_timer(self, logger, caplog):
        """Test time/time_end log elapsed milliseconds"""
        diagnostics = LoggingDiagnostics(logger)

        with caplog.at_level(logging.INFO, logger=logger.name):
            diagnostics.time("export", {"strokes": 2})
            diagnostics.time_end("export")

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0].startswith("[removal] export:start")
        assert messages[1].startswith("[removal] export:end")
        assert '"ms":' in messages[1]
        assert '"strokes": 2' in messages[1]

    def test_timer_end_without_start(self, logger, caplog):
        """Test ending an unknown timer warns"""
        diagnostics = LoggingDiagnostics(logger)

        with caplog.at_level(logging.INFO, logger=logger.name):
            diagnostics.time_end("export")

        assert caplog.records[-1].levelno == logging.WARNING
        assert "export:end_without_start" in caplog.records[-1].getMessage()


@pytest.fixture
def reset_logger():
    """Detach and close handlers added to the named loggers"""
    names = []
    yield names.append
    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


class TestSetupLogging:
    """Tests for setup_logging"""

    def test_console_only(self, reset_logger):
        """Test a console handler is installed"""
        reset_logger("test_removal.console")
        logger = setup_logging(name="test_removal.console", level=logging.DEBUG)

        assert logger.level == logging.DEBUG
        assert [h.get_name() for h in logger.handlers] == ["test_removal.console.console"]

    def test_level_by_name(self, reset_logger):
        """Test levels can be given by name"""
        reset_logger("test_removal.named")

        assert setup_logging(name="test_removal.named", level="WARNING").level == logging.WARNING

    def test_file_handler(self, tmp_path, reset_logger):
        """Test a log file is written in the log directory"""
        reset_logger("test_removal.file")
        logger = setup_logging(name="test_removal.file", log_dir=tmp_path / "logs")
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "hello" in (tmp_path / "logs" / "test_removal.file.log").read_text()

    def test_repeated_setup_keeps_handlers(self, reset_logger):
        """Test calling twice doesn't duplicate handlers"""
        reset_logger("test_removal.repeat")
        setup_logging(name="test_removal.repeat")
        logger = setup_logging(name="test_removal.repeat", level=logging.ERROR)

        assert len(logger.handlers) == 1
        assert logger.level == logging.ERROR

    def test_foreign_handlers_kept(self, reset_logger):
        """Test handlers installed elsewhere are left alone"""
        reset_logger("test_removal.foreign")
        logger = logging.getLogger("test_removal.foreign")
        other = logging.NullHandler()
        logger.addHandler(other)

        setup_logging(name="test_removal.foreign")

        assert other in logger.handlers
        assert len(logger.handlers) == 2


class TestDefaultDiagnostics:
    """Tests for configuration-driven sink selection"""

    def test_disabled(self, monkeypatch):
        monkeypatch.setattr(config, "LOGS_ENABLED", False)

        assert type(default_diagnostics()) is NullDiagnostics

    def test_enabled(self, monkeypatch, tmp_path, reset_logger):
        """Test enabling logs configures the shared logger"""
        reset_logger(LOGGER_NAME)
        monkeypatch.setattr(config, "LOGS_ENABLED", True)
        monkeypatch.setattr(config, "LOG_LEVEL", "DEBUG")
        monkeypatch.setattr(config, "LOG_DIR", str(tmp_path / "logs"))

        diagnostics = default_diagnostics("pipeline")
        diagnostics.log("export:target", {"width": 128})
        for handler in diagnostics.logger.handlers:
            handler.flush()

        assert isinstance(diagnostics, LoggingDiagnostics)
        assert diagnostics.scope == "pipeline"
        assert diagnostics.logger.name == LOGGER_NAME
        assert diagnostics.logger.level == logging.DEBUG
        log_text = (tmp_path / "logs" / f"{LOGGER_NAME}.log").read_text()
        assert '[pipeline] export:target {"width": 128}' in log_text
