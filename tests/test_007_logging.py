"""
Unit tests for pluto_src logging module.
Tests the logging API, output modes and the per-build trace IDs.
"""
import logging
import re

import pytest

from pluto_src.exceptions import ToolchainError
from pluto_src.logging import logger, setup_logging, BuildLogger, FILE, STDOUT, BOTH

from conftest import FakeToolchainFactory


class TestLoggingBasics:

    def test_logger_disabled_by_default(self, cleanup_logger):
        assert logger.getLevel() == logging.CRITICAL
        assert not logger.isEnabledFor(logging.DEBUG)

    def test_setup_logging_enables_debug(self, cleanup_logger):
        setup_logging()
        assert logger.getLevel() == logging.DEBUG
        assert logger.isEnabledFor(logging.DEBUG)
        assert logger.output == STDOUT

    def test_singleton_behavior(self, cleanup_logger):
        assert BuildLogger() is logger

    def test_invalid_output_mode(self, cleanup_logger):
        with pytest.raises(ValueError, match="Invalid output mode"):
            setup_logging(output="syslog")

    def test_disabled_logger_prints_nothing(self, cleanup_logger, capsys):
        logger.debug("should not appear")
        assert capsys.readouterr().out == ""


class TestOutputModes:

    def test_stdout(self, cleanup_logger, capsys):
        setup_logging(output=STDOUT)
        logger.debug("probing %s", "-fno-rtti")
        out = capsys.readouterr().out
        assert "[pluto_src] probing -fno-rtti" in out
        assert "DEBUG" in out
        assert logger.log_file is None

    def test_file(self, cleanup_logger, tmp_path):
        log_path = tmp_path / "logs" / "build.log"
        setup_logging(output=FILE, log_file_path=str(log_path))
        logger.debug("hello from the build")
        assert logger.log_file == str(log_path)
        assert "[pluto_src] hello from the build" in log_path.read_text(encoding="utf-8")

    def test_both(self, cleanup_logger, tmp_path, capsys):
        log_path = tmp_path / "build.log"
        setup_logging(output=BOTH, log_file_path=str(log_path))
        logger.debug("twice")
        assert "twice" in capsys.readouterr().out
        assert "twice" in log_path.read_text(encoding="utf-8")
        assert len(logger.handlers) == 2


class TestTraceIds:

    def test_generated_ids_are_unique(self, cleanup_logger):
        first = logger.generate_trace_id()
        second = logger.generate_trace_id()
        assert first != second
        assert re.fullmatch(r"BUILD-\d+-\d+", first)

    def test_no_trace_id_outside_build(self, cleanup_logger, capsys):
        setup_logging()
        logger.debug("idle")
        assert "[-]" in capsys.readouterr().out

    def test_build_logs_under_trace_id(self, cleanup_logger, make_build, capsys):
        setup_logging()
        make_build("x86_64-unknown-linux-gnu").build()
        out = capsys.readouterr().out
        assert re.search(r"\[BUILD-\d+-\d+\]", out)
        assert "Compiling soup" in out
        assert "Compiling pluto" in out
        assert logger.get_trace_id() is None

    def test_trace_id_cleared_after_failure(self, cleanup_logger, make_build):
        build = make_build(factory=FakeToolchainFactory(fail_on={"soup"}))
        with pytest.raises(ToolchainError):
            build.build()
        assert logger.get_trace_id() is None

    def test_rejected_flag_logged(self, cleanup_logger, make_build, capsys):
        setup_logging()
        make_build(factory=FakeToolchainFactory(unsupported={"-fno-rtti"})).build()
        assert "Compiler does not support -fno-rtti, skipping" in capsys.readouterr().out
