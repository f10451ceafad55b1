"""
Test logging setup
"""

import logging

import pytest
from rich.logging import RichHandler

from src.utils.logger import get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:

    def test_installs_file_and_console_handlers(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "toerank.log"

        root = setup_logging(log_file=str(log_file), log_level="warning")

        assert log_file.parent.is_dir()
        assert len(root.handlers) == 2
        assert any(isinstance(h, RichHandler) for h in root.handlers)
        assert all(h.level == logging.WARNING for h in root.handlers)

    def test_repeated_setup_replaces_handlers(self, tmp_path, restore_root_logger):
        setup_logging(log_file=str(tmp_path / "a.log"))
        root = setup_logging(log_file=str(tmp_path / "b.log"))
        assert len(root.handlers) == 2

    def test_file_lines_carry_thread_name(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "toerank.log"
        setup_logging(log_file=str(log_file), log_level="INFO")

        get_logger("src.scorer.ranking_registry").info("admitted cand-1")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().splitlines()[-1]
        assert " - MainThread - src.scorer.ranking_registry - INFO - admitted cand-1" in line

    def test_module_levels_and_quiet_loggers(self, tmp_path, restore_root_logger):
        setup_logging(
            log_file=str(tmp_path / "toerank.log"),
            module_levels={'src.scorer.mcda_scorer': 'debug'},
        )

        assert logging.getLogger('src.scorer.mcda_scorer').level == logging.DEBUG
        assert logging.getLogger('sqlalchemy.engine').level == logging.WARNING
        logging.getLogger('src.scorer.mcda_scorer').setLevel(logging.NOTSET)
