"""
Unit tests for logging setup.
"""

import logging

from fundsplit.utils.logger import FundSplitLogger, get_logger, setup_logging


def teardown_function():
    setup_logging()
    logging.getLogger("fundsplit.journal").setLevel(logging.NOTSET)


def test_subsystem_namespace():
    assert get_logger("engine").name == "fundsplit.engine"


def test_setup_replaces_handlers():
    setup_logging(level=logging.DEBUG)
    setup_logging(level=logging.DEBUG)

    root = logging.getLogger("fundsplit")
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG


def test_file_output(tmp_path):
    setup_logging(log_dir=str(tmp_path / "logs"), log_to_file=True)
    get_logger("factory").info("instance created")

    for handler in logging.getLogger("fundsplit").handlers:
        handler.flush()
    assert FundSplitLogger.log_file == tmp_path / "logs" / "fundsplit.log"
    assert "instance created" in FundSplitLogger.log_file.read_text()


def test_subsystem_override(caplog):
    setup_logging(level=logging.INFO, subsystem_levels={"journal": logging.WARNING})

    with caplog.at_level(logging.INFO, logger="fundsplit.engine"):
        get_logger("journal").info("hidden")
        get_logger("engine").info("shown")

    messages = [r.getMessage() for r in caplog.records]
    assert "shown" in messages
    assert "hidden" not in messages
