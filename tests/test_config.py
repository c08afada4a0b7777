"""
Tests for configuration, logging and helper utilities.
"""

import logging
import time

import pytest

from config import ConfigurationManager, get_config
from mandate_ocr.utils.exceptions import ExtractionTimeoutError, StoreUnavailableError
from mandate_ocr.utils.helpers import call_with_timeout, file_sha256, move_file
from mandate_ocr.utils.logger import get_logger, get_mandate_logger


class TestConfiguration:
    """Tests for the YAML configuration manager."""

    def test_dot_notation(self):
        assert get_config("database.retry.max_attempts") == 3
        assert get_config("segmentation.marker_prefix") == "DOCSEP"

    def test_default_for_missing_key(self):
        assert get_config("does.not.exist", "fallback") == "fallback"

    def test_singleton(self):
        assert ConfigurationManager() is ConfigurationManager()

    def test_custom_file(self, tmp_path):
        custom = tmp_path / "settings.yaml"
        custom.write_text("database:\n  retry:\n    max_attempts: 7\n")
        try:
            ConfigurationManager.reset()
            ConfigurationManager(str(custom))
            assert get_config("database.retry.max_attempts") == 7
            assert get_config("repository.cache_ttl_seconds", 300) == 300
        finally:
            ConfigurationManager.reset()

    def test_missing_file(self, tmp_path):
        try:
            ConfigurationManager.reset()
            with pytest.raises(FileNotFoundError):
                ConfigurationManager(str(tmp_path / "missing.yaml"))
        finally:
            ConfigurationManager.reset()


class TestLogging:
    """Tests for module and mandate loggers."""

    def test_module_logger_namespace(self):
        assert get_logger("mandate_ocr.pipeline.worker").name == "mandate_ocr.pipeline.worker"

    def test_mandate_prefix(self, caplog):
        log = get_mandate_logger("mandate_ocr.tests", "acme")
        with caplog.at_level(logging.INFO, logger="mandate_ocr.tests"):
            log.info("cycle finished")
        assert "[acme] cycle finished" in caplog.text


class TestHelpers:
    """Tests for file and timeout helpers."""

    def test_move_file_never_overwrites(self, tmp_path):
        target = tmp_path / "archive"
        target.mkdir()
        (target / "scan.pdf").write_bytes(b"first")
        source = tmp_path / "scan.pdf"
        source.write_bytes(b"second")

        moved = move_file(source, target)

        assert moved != target / "scan.pdf"
        assert moved.read_bytes() == b"second"
        assert (target / "scan.pdf").read_bytes() == b"first"
        assert not source.exists()

    def test_move_file_sanitizes_renamed_target(self, tmp_path):
        target = tmp_path / "archive"
        target.mkdir()
        (target / "scan_1.pdf").write_bytes(b"first")
        source = tmp_path / "scan|1.pdf"
        source.write_bytes(b"second")

        moved = move_file(source, target)

        assert moved.name.startswith("scan_1_")
        assert moved.suffix == ".pdf"
        assert "|" not in moved.name

    def test_file_sha256_is_content_based(self, tmp_path):
        a = tmp_path / "a.pdf"
        b = tmp_path / "b.pdf"
        a.write_bytes(b"same")
        b.write_bytes(b"same")
        assert file_sha256(a) == file_sha256(b)
        assert len(file_sha256(a)) == 64

    def test_call_with_timeout(self):
        assert call_with_timeout(lambda x: x * 2, 1, 21) == 42

        with pytest.raises(ExtractionTimeoutError):
            call_with_timeout(time.sleep, 0.05, 0.5, capability="ocr")

    def test_call_with_timeout_reraises(self):
        def broken():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            call_with_timeout(broken, 1)


def test_error_details_rendered():
    error = StoreUnavailableError("persist result", 3, "connection refused")
    assert error.attempts == 3
    assert "connection refused" in str(error)
