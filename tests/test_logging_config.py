"""Unit tests for setup_logging."""

import logging

from marbles.logging_config import setup_logging


def _own_handlers(logger):
    return [h for h in logger.handlers if getattr(h, "_marbles_handler", False)]


class TestSetupLogging:
    def test_level_and_console_handler(self):
        logger = setup_logging("debug", name="marbles.test_console")
        assert logger.level == logging.DEBUG
        handlers = _own_handlers(logger)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)

    def test_repeated_calls_do_not_duplicate(self):
        setup_logging("INFO", name="marbles.test_repeat")
        logger = setup_logging("WARNING", name="marbles.test_repeat")
        assert len(_own_handlers(logger)) == 1
        assert logger.level == logging.WARNING

    def test_file_handler_writes(self, tmp_path):
        log_file = tmp_path / "logs" / "render.log"
        logger = setup_logging("INFO", log_file=log_file, name="marbles.test_file")
        logger.info("rendered %d samples", 7)
        for handler in _own_handlers(logger):
            handler.flush()

        assert log_file.exists()
        text = log_file.read_text(encoding="utf-8")
        assert "marbles.test_file - INFO - rendered 7 samples" in text

        for handler in _own_handlers(logger):
            logger.removeHandler(handler)
            handler.close()

    def test_unknown_level_name_falls_back_to_info(self):
        logger = setup_logging("chatty", name="marbles.test_fallback")
        assert logger.level == logging.INFO
